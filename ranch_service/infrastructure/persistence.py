"""
Infrastructure layer: persistence interface and in-memory backend.

The core loads and saves Ranch aggregates (with their embedded pastures)
and reads herd counts, production summaries and events through
RanchRepository. Backends distinguish unknown ids (NotFoundError) from
transient failures (PersistenceError).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import Awaitable, Iterable, Optional, TypeVar

import numpy as np

from ranch_service.domain.errors import (
    ConflictError,
    DependencyTimeoutError,
    NotFoundError,
)
from ranch_service.domain.models import (
    AnimalRecord,
    EventRecord,
    Gender,
    ProductionRecord,
    ProductionSummary,
    Ranch,
    RanchFilter,
    SortField,
    SortOrder,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOLD_STATUS = "sold"


async def with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await an external call, bounding it by a timeout.

    Raises:
        DependencyTimeoutError: If the call does not finish in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise DependencyTimeoutError(f"{operation} timed out after {timeout}s")


class RanchRepository(ABC):
    """Persistence interface consumed by the ranch core."""

    @abstractmethod
    async def get_ranch(self, ranch_id: str) -> Ranch:
        """Load a ranch aggregate. Raises NotFoundError if unknown."""

    @abstractmethod
    async def insert_ranch(self, ranch: Ranch) -> Ranch:
        """Store a new ranch aggregate."""

    @abstractmethod
    async def save_ranch(self, ranch: Ranch, expected_version: int) -> Ranch:
        """
        Replace a stored ranch aggregate.

        The stored version must equal ``expected_version``, otherwise
        ConflictError is raised. The returned ranch carries the new version.
        """

    @abstractmethod
    async def delete_ranch(self, ranch_id: str) -> None:
        """Delete a ranch aggregate. Raises NotFoundError if unknown."""

    @abstractmethod
    async def list_ranches(
        self,
        ranch_filter: RanchFilter,
        offset: int,
        limit: int,
        sort_field: SortField,
        sort_order: SortOrder,
    ) -> tuple[list[Ranch], int]:
        """Return one page of matching ranches and the total match count."""

    @abstractmethod
    async def count_animals(self, ranch_id: str, gender: Optional[Gender] = None) -> int:
        """Count non-sold animals of a ranch, optionally by gender."""

    @abstractmethod
    async def summarize_production(
        self, ranch_id: str, since: datetime
    ) -> list[ProductionSummary]:
        """Per production type totals for records since ``since``."""

    @abstractmethod
    async def list_recent_events(self, ranch_id: str, limit: int) -> list[EventRecord]:
        """Most recent events of a ranch, newest first."""

    @abstractmethod
    async def count_alerts(
        self, ranch_id: str, priorities: Iterable[str], status: str = "active"
    ) -> int:
        """Count events of a ranch with the given status and priorities."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryRanchRepository(RanchRepository):
    """
    Process-local backend.

    Aggregates are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._ranches: dict[str, Ranch] = {}
        self._animals: dict[str, AnimalRecord] = {}
        self._production: list[ProductionRecord] = []
        self._events: list[EventRecord] = []

    # Seeding helpers for herd records owned by other subsystems

    def add_animal(self, animal: AnimalRecord) -> None:
        self._animals[animal.id] = animal

    def add_production(self, record: ProductionRecord) -> None:
        self._production.append(record)

    def add_event(self, event: EventRecord) -> None:
        self._events.append(event)

    # Ranch aggregates

    async def get_ranch(self, ranch_id: str) -> Ranch:
        try:
            return self._ranches[ranch_id].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(f"Ranch {ranch_id} not found")

    async def insert_ranch(self, ranch: Ranch) -> Ranch:
        if ranch.id in self._ranches:
            raise ConflictError(f"Ranch {ranch.id} already exists")
        self._ranches[ranch.id] = ranch.model_copy(deep=True)
        return ranch.model_copy(deep=True)

    async def save_ranch(self, ranch: Ranch, expected_version: int) -> Ranch:
        stored = self._ranches.get(ranch.id)
        if stored is None:
            raise NotFoundError(f"Ranch {ranch.id} not found")
        if stored.version != expected_version:
            raise ConflictError(
                f"Ranch {ranch.id} was modified concurrently "
                f"(expected version {expected_version}, found {stored.version})"
            )
        saved = ranch.model_copy(deep=True, update={"version": expected_version + 1})
        self._ranches[ranch.id] = saved
        return saved.model_copy(deep=True)

    async def delete_ranch(self, ranch_id: str) -> None:
        if self._ranches.pop(ranch_id, None) is None:
            raise NotFoundError(f"Ranch {ranch_id} not found")

    async def list_ranches(
        self,
        ranch_filter: RanchFilter,
        offset: int,
        limit: int,
        sort_field: SortField,
        sort_order: SortOrder,
    ) -> tuple[list[Ranch], int]:
        matches = [r for r in self._ranches.values() if _matches(r, ranch_filter)]
        if sort_field == SortField.CREATED_AT:
            matches.sort(key=lambda r: (r.created_at, r.id))
        else:
            matches.sort(key=lambda r: (r.name.casefold(), r.id))
        if sort_order == SortOrder.DESC:
            matches.reverse()
        page = matches[offset:offset + limit]
        return [r.model_copy(deep=True) for r in page], len(matches)

    # Herd records

    async def count_animals(self, ranch_id: str, gender: Optional[Gender] = None) -> int:
        return sum(
            1 for a in self._animals.values()
            if a.ranch_id == ranch_id
            and a.status != SOLD_STATUS
            and (gender is None or a.gender == gender)
        )

    async def summarize_production(
        self, ranch_id: str, since: datetime
    ) -> list[ProductionSummary]:
        values_by_type: dict[str, list[float]] = defaultdict(list)
        for record in self._production:
            if record.ranch_id == ranch_id and record.recorded_at >= since:
                values_by_type[record.production_type].append(record.value)

        summaries = []
        for production_type, values in sorted(values_by_type.items()):
            values_array = np.asarray(values, dtype=float)
            summaries.append(ProductionSummary(
                production_type=production_type,
                total=float(np.sum(values_array)),
                average=float(np.mean(values_array)),
                record_count=int(values_array.size),
            ))
        return summaries

    async def list_recent_events(self, ranch_id: str, limit: int) -> list[EventRecord]:
        events = [e for e in self._events if e.ranch_id == ranch_id]
        events.sort(key=lambda e: e.created_at, reverse=True)
        return events[:limit]

    async def count_alerts(
        self, ranch_id: str, priorities: Iterable[str], status: str = "active"
    ) -> int:
        wanted = set(priorities)
        return sum(
            1 for e in self._events
            if e.ranch_id == ranch_id and e.status == status and e.priority in wanted
        )


def _matches(ranch: Ranch, ranch_filter: RanchFilter) -> bool:
    if ranch_filter.search and ranch_filter.search.casefold() not in ranch.name.casefold():
        return False
    if ranch_filter.state and ranch.state_name != ranch_filter.state:
        return False
    if ranch_filter.municipality and ranch.municipality != ranch_filter.municipality:
        return False
    if ranch_filter.status and ranch.status != ranch_filter.status:
        return False
    return True


# Singleton instance
_repository: Optional[RanchRepository] = None


def get_repository() -> RanchRepository:
    """
    Get or create the singleton repository for the configured backend.

    Returns:
        RanchRepository instance
    """
    global _repository
    if _repository is None:
        from ranch_service.config import settings

        if settings.persistence_backend == "http":
            from ranch_service.infrastructure.persistence_api_client import PersistenceAPIClient

            _repository = PersistenceAPIClient()
        else:
            logger.info("Using in-memory persistence backend")
            _repository = InMemoryRanchRepository()
    return _repository
