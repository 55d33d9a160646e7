"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- A fixed clock
- Ranch and pasture factories
- In-memory repository and wired services
- FastAPI test client
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from ranch_service.main import app
from ranch_service.domain.models import (
    Coordinates,
    ManagementSystem,
    OperationType,
    Pasture,
    PastureStatus,
    Ranch,
    RanchConfiguration,
)
from ranch_service.infrastructure.image_service import ImageService, get_image_service
from ranch_service.infrastructure.persistence import InMemoryRanchRepository, get_repository
from ranch_service.services.application.pasture_service import PastureService
from ranch_service.services.application.ranch_directory import RanchDirectory
from ranch_service.services.application.ranch_locks import RanchLockRegistry
from ranch_service.services.domain.herd_statistics import HerdStatisticsAggregator
from ranch_service.services.domain.pasture_store import PastureStore


FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
OWNER_ID = "user-owner"
OTHER_USER_ID = "user-other"


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def pasture_factory():
    """Build pastures with sensible defaults."""
    def _make(pasture_id: str, capacity: int, current: int = 0, **overrides) -> Pasture:
        fields = {
            "id": pasture_id,
            "name": f"Pasture {pasture_id}",
            "area_hectares": 10.0,
            "capacity_bovines": capacity,
            "current_bovines": current,
            "status": PastureStatus.OCCUPIED if current > 0 else PastureStatus.AVAILABLE,
        }
        fields.update(overrides)
        return Pasture(**fields)
    return _make


@pytest.fixture
def ranch_factory():
    """Build ranch aggregates located in Centro, Tabasco."""
    counter = {"n": 0}

    def _make(**overrides) -> Ranch:
        counter["n"] += 1
        fields = {
            "id": f"ranch-{counter['n']}",
            "name": f"Rancho {counter['n']}",
            "total_area_hectares": 120.0,
            "municipality": "Centro",
            "location": Coordinates(latitude=17.9, longitude=-92.9),
            "operation_type": OperationType.DAIRY,
            "management_system": ManagementSystem.EXTENSIVE,
            "configuration": RanchConfiguration(),
            "owner_id": OWNER_ID,
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        fields.update(overrides)
        return Ranch(**fields)
    return _make


@pytest.fixture
def scenario_ranch(ranch_factory, pasture_factory) -> Ranch:
    """Ranch with P1 full (10/10) and P2 empty (0/5)."""
    return ranch_factory(
        id="ranch-scenario",
        pastures=[
            pasture_factory("P1", capacity=10, current=10),
            pasture_factory("P2", capacity=5, current=0),
        ],
    )


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def repository() -> InMemoryRanchRepository:
    return InMemoryRanchRepository()


@pytest.fixture
def pasture_store(clock) -> PastureStore:
    return PastureStore(clock=clock)


@pytest.fixture
def locks() -> RanchLockRegistry:
    return RanchLockRegistry()


@pytest.fixture
def aggregator(repository, pasture_store, clock) -> HerdStatisticsAggregator:
    return HerdStatisticsAggregator(
        repository=repository,
        pasture_store=pasture_store,
        recent_events_limit=3,
        timeout=1.0,
        clock=clock,
    )


@pytest.fixture
def mock_image_service():
    """Image service that always succeeds."""
    service = MagicMock(spec=ImageService)
    service.process_image.return_value = "https://img.example.com/processed/ranch.jpg"
    service.file_url.return_value = "https://img.example.com/files/uploads/ranch.jpg"
    return service


@pytest.fixture
def directory(repository, aggregator, pasture_store, locks, mock_image_service) -> RanchDirectory:
    return RanchDirectory(
        repository=repository,
        statistics=aggregator,
        pasture_store=pasture_store,
        locks=locks,
        image_service=mock_image_service,
        timeout=1.0,
    )


@pytest.fixture
def pasture_service(repository, pasture_store, locks) -> PastureService:
    return PastureService(
        repository=repository,
        pasture_store=pasture_store,
        locks=locks,
        timeout=1.0,
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client(repository, mock_image_service) -> TestClient:
    """Synchronous test client wired to a fresh in-memory repository."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_image_service] = lambda: mock_image_service
    app.state.limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
