"""
Domain service: on-demand herd statistics for a ranch.

Snapshots are built from independent sub-queries issued concurrently. A
failing sub-query degrades to an empty default so the dashboard stays
usable; cancelling the caller cancels every in-flight sub-query and no
partial snapshot is returned.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from ranch_service.config import settings
from ranch_service.domain.errors import RanchServiceError, ValidationError
from ranch_service.domain.models import (
    Gender,
    HerdCountSummary,
    HerdStatisticsSnapshot,
    PastureOccupancy,
    utcnow,
)
from ranch_service.infrastructure.persistence import RanchRepository, with_timeout
from ranch_service.services.domain.pasture_store import PastureStore

logger = logging.getLogger(__name__)

ALERT_PRIORITIES = ("high", "critical")
ACTIVE_ALERT_STATUS = "active"


@dataclass
class SubQueryResult:
    """Result slot owned by a single sub-query."""
    name: str
    value: Any
    degraded: bool = False


class HerdStatisticsAggregator:
    """
    Computes herd composition, production and alert statistics.

    Snapshots are constructed fresh on every call and never cached.
    """

    def __init__(
        self,
        repository: RanchRepository,
        pasture_store: Optional[PastureStore] = None,
        recent_events_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the aggregator.

        Args:
            repository: Persistence interface for animals, events and ranches
            pasture_store: Used for occupancy views over the ranch pastures
            recent_events_limit: Bound on the recent events list
            timeout: Per sub-query timeout in seconds
            clock: Source of the current time
        """
        self.repository = repository
        self.pasture_store = pasture_store or PastureStore()
        self.recent_events_limit = recent_events_limit or settings.recent_events_limit
        self.timeout = timeout or settings.persistence_timeout_seconds
        self._clock = clock

    async def compute_snapshot(
        self,
        ranch_id: str,
        period_days: int,
        timeout: Optional[float] = None,
    ) -> HerdStatisticsSnapshot:
        """
        Build a statistics snapshot for a ranch.

        Args:
            ranch_id: Ranch to report on
            period_days: Trailing window for production statistics
            timeout: Per sub-query timeout, overriding the default

        Returns:
            HerdStatisticsSnapshot; fields whose sub-query failed hold
            defaults and are listed in ``degraded_fields``

        Raises:
            ValidationError: If period_days is not positive
        """
        if period_days <= 0:
            raise ValidationError(f"period_days must be positive, got {period_days}")

        timeout = timeout or self.timeout
        now = self._clock()
        since = now - timedelta(days=period_days)

        female, male, production, events, alerts, occupancy = await asyncio.gather(
            self._guarded(
                "female_count", lambda: self.repository.count_animals(ranch_id, Gender.FEMALE), 0, timeout
            ),
            self._guarded(
                "male_count", lambda: self.repository.count_animals(ranch_id, Gender.MALE), 0, timeout
            ),
            self._guarded(
                "production_summaries",
                lambda: self.repository.summarize_production(ranch_id, since),
                [],
                timeout,
            ),
            self._guarded(
                "recent_events",
                lambda: self.repository.list_recent_events(ranch_id, self.recent_events_limit),
                [],
                timeout,
            ),
            self._guarded(
                "active_alert_count",
                lambda: self.repository.count_alerts(
                    ranch_id, ALERT_PRIORITIES, ACTIVE_ALERT_STATUS
                ),
                0,
                timeout,
            ),
            self._guarded(
                "pasture_occupancy",
                lambda: self._pasture_occupancy(ranch_id),
                PastureOccupancy(),
                timeout,
            ),
        )
        results = [female, male, production, events, alerts, occupancy]

        snapshot = HerdStatisticsSnapshot(
            ranch_id=ranch_id,
            period_days=period_days,
            female_count=female.value,
            male_count=male.value,
            total_count=female.value + male.value,
            production_summaries=production.value,
            recent_events=events.value[:self.recent_events_limit],
            active_alert_count=alerts.value,
            pasture_occupancy=occupancy.value,
            degraded_fields=[r.name for r in results if r.degraded],
            computed_at=now,
        )
        logger.debug(
            f"Computed snapshot for ranch {ranch_id}: total={snapshot.total_count}, "
            f"alerts={snapshot.active_alert_count}, degraded={snapshot.degraded_fields}"
        )
        return snapshot

    async def count_summary(
        self,
        ranch_id: str,
        timeout: Optional[float] = None,
    ) -> HerdCountSummary:
        """Active animal counts used as summary columns in ranch listings."""
        timeout = timeout or self.timeout
        female, male = await asyncio.gather(
            self._guarded(
                "female_count", lambda: self.repository.count_animals(ranch_id, Gender.FEMALE), 0, timeout
            ),
            self._guarded(
                "male_count", lambda: self.repository.count_animals(ranch_id, Gender.MALE), 0, timeout
            ),
        )
        return HerdCountSummary(
            active_bovines=female.value + male.value,
            female_bovines=female.value,
            male_bovines=male.value,
        )

    async def _pasture_occupancy(self, ranch_id: str) -> PastureOccupancy:
        ranch = await self.repository.get_ranch(ranch_id)
        return PastureOccupancy(
            total_pastures=len(ranch.pastures),
            total_area_hectares=self.pasture_store.total_area(ranch),
            current_bovines=self.pasture_store.total_occupancy(ranch),
            capacity_bovines=self.pasture_store.total_capacity(ranch),
        )

    async def _guarded(
        self,
        name: str,
        query: Callable[[], Awaitable[Any]],
        default: Any,
        timeout: float,
    ) -> SubQueryResult:
        try:
            value = await with_timeout(query(), timeout, name)
        except RanchServiceError as e:
            logger.warning(f"Statistics sub-query '{name}' failed, using default: {e}")
            return SubQueryResult(name=name, value=default, degraded=True)
        return SubQueryResult(name=name, value=value)
