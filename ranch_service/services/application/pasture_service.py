"""
Application service: Orchestration layer for pasture operations.
"""
from typing import Callable, Optional, TypeVar

from ranch_service.config import settings
from ranch_service.domain.errors import AuthorizationError
from ranch_service.domain.models import (
    Pasture,
    PastureOverview,
    PasturePatch,
    PastureSpec,
    Ranch,
)
from ranch_service.infrastructure.persistence import RanchRepository, with_timeout
from ranch_service.services.application.ranch_locks import RanchLockRegistry
from ranch_service.services.domain.pasture_store import PastureStore

T = TypeVar("T")


class PastureService:
    """
    Application service for pasture-related operations.

    Loads the ranch aggregate, applies a PastureStore operation under the
    per-ranch lock and saves the result with an optimistic version check.
    No business logic here, only coordination between infrastructure and
    domain layers.
    """

    def __init__(
        self,
        repository: RanchRepository,
        pasture_store: PastureStore,
        locks: RanchLockRegistry,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            repository: Persistence interface for ranch aggregates
            pasture_store: Domain service enforcing pasture invariants
            locks: Per-ranch lock registry shared by all mutating services
            timeout: Default timeout for persistence calls in seconds
        """
        self.repository = repository
        self.pasture_store = pasture_store
        self.locks = locks
        self.timeout = timeout or settings.persistence_timeout_seconds

    async def list_pastures(self, ranch_id: str) -> PastureOverview:
        ranch = await with_timeout(
            self.repository.get_ranch(ranch_id), self.timeout, "load ranch"
        )
        pastures = self.pasture_store.list_pastures(ranch)
        return PastureOverview(
            pastures=pastures,
            total_pastures=len(pastures),
            total_area_hectares=self.pasture_store.total_area(ranch),
            total_occupancy=self.pasture_store.total_occupancy(ranch),
            total_capacity=self.pasture_store.total_capacity(ranch),
            due_rotations=self.pasture_store.due_rotations(ranch),
        )

    async def add_pasture(
        self, ranch_id: str, spec: PastureSpec, requesting_user_id: str
    ) -> Pasture:
        return await self._mutate(
            ranch_id,
            requesting_user_id,
            lambda ranch: self.pasture_store.add_pasture(ranch, spec),
        )

    async def update_pasture(
        self,
        ranch_id: str,
        pasture_id: str,
        patch: PasturePatch,
        requesting_user_id: str,
    ) -> Pasture:
        return await self._mutate(
            ranch_id,
            requesting_user_id,
            lambda ranch: self.pasture_store.update_pasture(ranch, pasture_id, patch),
        )

    async def remove_pasture(
        self, ranch_id: str, pasture_id: str, requesting_user_id: str
    ) -> Pasture:
        return await self._mutate(
            ranch_id,
            requesting_user_id,
            lambda ranch: self.pasture_store.remove_pasture(ranch, pasture_id),
        )

    async def rotate(
        self,
        ranch_id: str,
        from_pasture_id: str,
        to_pasture_id: str,
        quantity: int,
        requesting_user_id: str,
    ) -> tuple[Pasture, Pasture]:
        """
        Rotate animals between two pastures of a ranch.

        Two concurrent rotations on the same ranch are serialized, so
        neither can commit against a stale occupancy count.

        Returns:
            Updated (source, destination) pastures
        """
        return await self._mutate(
            ranch_id,
            requesting_user_id,
            lambda ranch: self.pasture_store.rotate(
                ranch, from_pasture_id, to_pasture_id, quantity
            ),
        )

    async def _mutate(
        self,
        ranch_id: str,
        requesting_user_id: str,
        operation: Callable[[Ranch], T],
    ) -> T:
        async with self.locks.hold(ranch_id):
            ranch = await with_timeout(
                self.repository.get_ranch(ranch_id), self.timeout, "load ranch"
            )
            if ranch.owner_id != requesting_user_id:
                raise AuthorizationError(
                    f"User {requesting_user_id} does not own ranch {ranch_id}"
                )
            loaded_version = ranch.version
            result = operation(ranch)
            await with_timeout(
                self.repository.save_ranch(ranch, loaded_version), self.timeout, "save ranch"
            )
            return result
