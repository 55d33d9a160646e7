"""
Dependency injection for FastAPI.
"""
from functools import lru_cache
from typing import Annotated
from fastapi import Depends, Header

from ranch_service.infrastructure.image_service import ImageService, get_image_service
from ranch_service.infrastructure.persistence import RanchRepository, get_repository
from ranch_service.services.application.pasture_service import PastureService
from ranch_service.services.application.ranch_directory import RanchDirectory
from ranch_service.services.application.ranch_locks import RanchLockRegistry
from ranch_service.services.domain.herd_statistics import HerdStatisticsAggregator
from ranch_service.services.domain.pasture_store import PastureStore


@lru_cache
def get_lock_registry() -> RanchLockRegistry:
    """
    Process-wide lock registry.

    Shared by every request so that mutations of one ranch are serialized.
    """
    return RanchLockRegistry()


def get_pasture_store() -> PastureStore:
    """
    Dependency factory for PastureStore.

    Returns:
        PastureStore instance
    """
    return PastureStore()


def get_herd_statistics(
    repository: Annotated[RanchRepository, Depends(get_repository)],
    pasture_store: Annotated[PastureStore, Depends(get_pasture_store)],
) -> HerdStatisticsAggregator:
    return HerdStatisticsAggregator(repository=repository, pasture_store=pasture_store)


def get_ranch_directory(
    repository: Annotated[RanchRepository, Depends(get_repository)],
    statistics: Annotated[HerdStatisticsAggregator, Depends(get_herd_statistics)],
    pasture_store: Annotated[PastureStore, Depends(get_pasture_store)],
    locks: Annotated[RanchLockRegistry, Depends(get_lock_registry)],
    image_service: Annotated[ImageService, Depends(get_image_service)],
) -> RanchDirectory:
    """
    Dependency factory for RanchDirectory.

    Returns:
        RanchDirectory instance
    """
    return RanchDirectory(
        repository=repository,
        statistics=statistics,
        pasture_store=pasture_store,
        locks=locks,
        image_service=image_service,
    )


def get_pasture_service(
    repository: Annotated[RanchRepository, Depends(get_repository)],
    pasture_store: Annotated[PastureStore, Depends(get_pasture_store)],
    locks: Annotated[RanchLockRegistry, Depends(get_lock_registry)],
) -> PastureService:
    """
    Dependency factory for PastureService.

    Returns:
        PastureService instance
    """
    return PastureService(repository=repository, pasture_store=pasture_store, locks=locks)


def get_current_user_id(
    x_user_id: Annotated[str, Header(description="Authenticated user id")],
) -> str:
    """The user id established by the upstream authentication layer."""
    return x_user_id


# Type aliases for cleaner route signatures
RanchDirectoryDep = Annotated[RanchDirectory, Depends(get_ranch_directory)]
PastureServiceDep = Annotated[PastureService, Depends(get_pasture_service)]
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
