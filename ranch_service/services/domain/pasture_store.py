"""
Domain service: pasture management and livestock rotation.

PastureStore operates on an in-memory Ranch aggregate loaded by the caller.
It performs no I/O. Every operation either applies completely or raises
and leaves the ranch untouched, and no operation can produce a pasture
with current_bovines outside [0, capacity_bovines].
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ranch_service.domain.errors import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    RestPeriodViolationError,
    ValidationError,
)
from ranch_service.domain.models import (
    Pasture,
    PasturePatch,
    PastureSpec,
    PastureStatus,
    Ranch,
    utcnow,
)
from ranch_service.services.domain.geo_validator import validate_boundary

logger = logging.getLogger(__name__)


class PastureStore:
    """
    Owns the ordered pasture collection of a ranch.

    Callers never splice ``ranch.pastures`` directly; all changes go through
    add/update/remove/rotate so the capacity and rest invariants are
    enforced in one place.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        """
        Initialize the store.

        Args:
            clock: Source of the current time, replaceable in tests
        """
        self._clock = clock
        self._last_id_millis = 0

    # --------------------------------------------------------
    # Read-only views
    # --------------------------------------------------------

    def list_pastures(self, ranch: Ranch) -> list[Pasture]:
        return list(ranch.pastures)

    def get_pasture(self, ranch: Ranch, pasture_id: str) -> Pasture:
        return ranch.pastures[self._index_of(ranch, pasture_id)]

    def total_area(self, ranch: Ranch) -> float:
        return sum(p.area_hectares for p in ranch.pastures)

    def total_occupancy(self, ranch: Ranch) -> int:
        return sum(p.current_bovines for p in ranch.pastures)

    def total_capacity(self, ranch: Ranch) -> int:
        return sum(p.capacity_bovines for p in ranch.pastures)

    def due_rotations(self, ranch: Ranch, now: Optional[datetime] = None) -> list[Pasture]:
        """
        Occupied pastures whose grazing period has elapsed.

        Returns an empty list when rotation is disabled for the ranch.
        """
        rotation = ranch.configuration.rotation
        if not rotation.rotation_enabled:
            return []
        now = now or self._clock()
        grazing_period = timedelta(days=rotation.rotation_days)
        return [
            p for p in ranch.pastures
            if p.status == PastureStatus.OCCUPIED
            and p.occupied_since is not None
            and now - p.occupied_since >= grazing_period
        ]

    # --------------------------------------------------------
    # Mutations
    # --------------------------------------------------------

    def add_pasture(self, ranch: Ranch, spec: PastureSpec) -> Pasture:
        """
        Create a pasture and append it to the ranch.

        Raises:
            ValidationError: If capacity is negative, area is not positive
                or the boundary is invalid
        """
        problems = self._field_problems(
            area_hectares=spec.area_hectares,
            capacity_bovines=spec.capacity_bovines,
            current_bovines=0,
        )
        problems.extend(validate_boundary(spec.coordinates))
        if problems:
            raise ValidationError(f"Invalid pasture '{spec.name}'", problems)

        pasture = Pasture(
            id=self._new_pasture_id(ranch),
            name=spec.name,
            area_hectares=spec.area_hectares,
            capacity_bovines=spec.capacity_bovines,
            current_bovines=0,
            pasture_type=spec.pasture_type,
            grass_species=set(spec.grass_species),
            coordinates=list(spec.coordinates),
            rotation_schedule=spec.rotation_schedule,
            status=PastureStatus.AVAILABLE,
        )
        self._commit(ranch, ranch.pastures + [pasture])
        logger.info(f"Added pasture {pasture.id} to ranch {ranch.id}")
        return pasture

    def update_pasture(self, ranch: Ranch, pasture_id: str, patch: PasturePatch) -> Pasture:
        """
        Merge a patch into a pasture. Fields sent as null are left unchanged.

        Raises:
            NotFoundError: If the pasture is not in the ranch
            ValidationError: If the merged pasture breaks an invariant
        """
        index = self._index_of(ranch, pasture_id)
        current = ranch.pastures[index]
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        merged = Pasture.model_validate({**current.model_dump(), **changes, "id": current.id})

        problems = self._field_problems(
            area_hectares=merged.area_hectares,
            capacity_bovines=merged.capacity_bovines,
            current_bovines=merged.current_bovines,
        )
        if "coordinates" in changes:
            problems.extend(validate_boundary(merged.coordinates))
        if problems:
            raise ValidationError(f"Invalid update for pasture {pasture_id}", problems)

        self._stamp_status_change(current, merged, self._clock())
        pastures = list(ranch.pastures)
        pastures[index] = merged
        self._commit(ranch, pastures)
        return merged

    def remove_pasture(self, ranch: Ranch, pasture_id: str) -> Pasture:
        """
        Remove an empty pasture.

        Raises:
            NotFoundError: If the pasture is not in the ranch
            ConflictError: If the pasture still holds animals
        """
        index = self._index_of(ranch, pasture_id)
        pasture = ranch.pastures[index]
        if pasture.current_bovines > 0:
            raise ConflictError(
                f"Pasture {pasture_id} holds {pasture.current_bovines} bovines "
                f"and cannot be removed"
            )
        self._commit(ranch, ranch.pastures[:index] + ranch.pastures[index + 1:])
        logger.info(f"Removed pasture {pasture_id} from ranch {ranch.id}")
        return pasture

    def rotate(
        self,
        ranch: Ranch,
        from_pasture_id: str,
        to_pasture_id: str,
        quantity: int,
        now: Optional[datetime] = None,
    ) -> tuple[Pasture, Pasture]:
        """
        Move animals from one pasture to another.

        Both pastures are updated together or not at all. A source pasture
        emptied by the move starts resting; the destination becomes occupied.

        Args:
            ranch: Ranch aggregate owning both pastures
            from_pasture_id: Source pasture
            to_pasture_id: Destination pasture
            quantity: Number of animals to move
            now: Rotation time (defaults to the store clock)

        Returns:
            Updated (source, destination) pastures

        Raises:
            NotFoundError: If either pasture is not in the ranch
            ValidationError: If quantity is not in 1..source occupancy, the
                pastures are the same or the destination is under maintenance
            CapacityExceededError: If the destination would exceed capacity
            RestPeriodViolationError: If the destination is still resting
        """
        now = now or self._clock()
        from_index = self._index_of(ranch, from_pasture_id)
        to_index = self._index_of(ranch, to_pasture_id)
        source = ranch.pastures[from_index]
        destination = ranch.pastures[to_index]

        if from_index == to_index:
            raise ValidationError("Source and destination pastures must differ")
        if quantity <= 0:
            raise ValidationError(f"Rotation quantity must be positive, got {quantity}")
        if quantity > source.current_bovines:
            raise ValidationError(
                f"Cannot move {quantity} bovines from pasture {source.id}: "
                f"it holds {source.current_bovines}"
            )
        if destination.status == PastureStatus.MAINTENANCE:
            raise ValidationError(f"Pasture {destination.id} is under maintenance")
        if destination.current_bovines + quantity > destination.capacity_bovines:
            raise CapacityExceededError(
                f"Pasture {destination.id} holds {destination.current_bovines} of "
                f"{destination.capacity_bovines}; cannot add {quantity}"
            )
        self._check_rest_period(ranch, destination, now)

        source = source.model_copy()
        destination = destination.model_copy()

        source.current_bovines -= quantity
        if source.current_bovines == 0:
            source.status = PastureStatus.RESTING
            source.resting_since = now
            source.occupied_since = None

        if destination.status != PastureStatus.OCCUPIED:
            destination.occupied_since = now
        destination.current_bovines += quantity
        destination.status = PastureStatus.OCCUPIED
        destination.resting_since = None

        pastures = list(ranch.pastures)
        pastures[from_index] = source
        pastures[to_index] = destination
        self._commit(ranch, pastures)

        logger.info(
            f"Rotated {quantity} bovines in ranch {ranch.id}: "
            f"{source.id} -> {destination.id}"
        )
        return source, destination

    # --------------------------------------------------------
    # Internals
    # --------------------------------------------------------

    def _check_rest_period(self, ranch: Ranch, destination: Pasture, now: datetime) -> None:
        rest_days = ranch.configuration.rotation.rest_days
        if rest_days <= 0 or destination.status != PastureStatus.RESTING:
            return
        # No timestamp means the pasture was marked resting before tracking existed
        if destination.resting_since is None:
            return
        rested = now - destination.resting_since
        if rested < timedelta(days=rest_days):
            raise RestPeriodViolationError(
                f"Pasture {destination.id} has rested {rested.days} of {rest_days} days"
            )

    @staticmethod
    def _stamp_status_change(previous: Pasture, updated: Pasture, now: datetime) -> None:
        # Rest and grazing periods restart on every status transition
        if updated.status == previous.status:
            return
        updated.resting_since = now if updated.status == PastureStatus.RESTING else None
        updated.occupied_since = now if updated.status == PastureStatus.OCCUPIED else None

    @staticmethod
    def _field_problems(
        area_hectares: float,
        capacity_bovines: int,
        current_bovines: int,
    ) -> list[str]:
        problems = []
        if area_hectares <= 0:
            problems.append(f"area_hectares: must be positive, got {area_hectares}")
        if capacity_bovines < 0:
            problems.append(f"capacity_bovines: must not be negative, got {capacity_bovines}")
        if current_bovines < 0:
            problems.append(f"current_bovines: must not be negative, got {current_bovines}")
        elif current_bovines > capacity_bovines:
            problems.append(
                f"current_bovines: {current_bovines} exceeds capacity {capacity_bovines}"
            )
        return problems

    @staticmethod
    def _index_of(ranch: Ranch, pasture_id: str) -> int:
        for index, pasture in enumerate(ranch.pastures):
            if pasture.id == pasture_id:
                return index
        raise NotFoundError(f"Pasture {pasture_id} not found in ranch {ranch.id}")

    def _new_pasture_id(self, ranch: Ranch) -> str:
        existing = {p.id for p in ranch.pastures}
        millis = max(int(self._clock().timestamp() * 1000), self._last_id_millis + 1)
        while f"pasture_{millis}" in existing:
            millis += 1
        self._last_id_millis = millis
        return f"pasture_{millis}"

    def _commit(self, ranch: Ranch, pastures: list[Pasture]) -> None:
        ranch.pastures = pastures
        ranch.updated_at = self._clock()
