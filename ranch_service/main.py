"""
ASGI entry point: ``uvicorn ranch_service.main:app``.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from ranch_service.api.v1.routers import ranches
from ranch_service.config import settings
from ranch_service.domain.errors import RanchServiceError
from ranch_service.infrastructure.image_service import get_image_service
from ranch_service.infrastructure.persistence import get_repository
from ranch_service.middleware.error_handler import ErrorHandlerMiddleware, ranch_error_handler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective configuration on startup and close backends on shutdown."""
    logger.info(
        f"{settings.app_name} v{settings.app_version} starting "
        f"(backend={settings.persistence_backend}, "
        f"timeout={settings.persistence_timeout_seconds}s, "
        f"rate limit={settings.rate_limit_requests}/min)"
    )
    yield
    await get_repository().close()
    await get_image_service().close()
    logger.info("Backends closed, shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Ranch land and herd allocation API.

    - **Ranches**: create, search and page through ranches inside the region
    - **Pastures**: capacity-checked pasture management
    - **Rotations**: move bovines between pastures, one rotation per ranch at a time
    - **Dashboards**: herd, production and alert statistics
    """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(RanchServiceError, ranch_error_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlerMiddleware)

app.include_router(ranches.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check. Does not touch the persistence backend."""
    return {"status": "healthy", "service": settings.app_name}
