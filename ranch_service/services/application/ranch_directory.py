"""
Application service: ranch listing, search and lifecycle.
"""
import asyncio
import logging
import math
import uuid
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ranch_service.config import settings
from ranch_service.domain.errors import (
    AuthorizationError,
    ConflictError,
    ImageProcessingError,
    ValidationError,
)
from ranch_service.domain.models import (
    ManagementSystem,
    Municipality,
    OperationType,
    Pagination,
    Ranch,
    RanchConfiguration,
    RanchCreate,
    RanchDashboard,
    RanchDetail,
    RanchFilter,
    RanchPage,
    RanchPatch,
    RanchSummary,
    SortField,
    SortOrder,
    utcnow,
)
from ranch_service.infrastructure.image_service import ImageService
from ranch_service.infrastructure.persistence import RanchRepository, with_timeout
from ranch_service.services.application.ranch_locks import RanchLockRegistry
from ranch_service.services.domain import geo_validator
from ranch_service.services.domain.herd_statistics import HerdStatisticsAggregator
from ranch_service.services.domain.pasture_store import PastureStore

logger = logging.getLogger(__name__)


def default_configuration(
    operation_type: OperationType,
    management_system: ManagementSystem,
) -> dict[str, Any]:
    """Deployment defaults for a new ranch configuration."""
    return {
        "milking_schedule": {
            "times_per_day": 2 if operation_type == OperationType.DAIRY else 1,
            "morning_time": "05:00",
            "afternoon_time": "16:00",
        },
        "feeding_schedule": {
            "times_per_day": 2,
            "feeding_times": ["07:00", "17:00"],
        },
        "rotation": {
            "rotation_enabled": management_system != ManagementSystem.INTENSIVE,
            "rotation_days": 7,
            "rest_days": 21,
        },
        "alerts": {
            "low_weight_threshold": 400,
            "low_milk_threshold": 10,
            "geofence_alerts": True,
            "health_alerts": True,
        },
    }


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overrides`` over ``base`` without mutating either."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build_configuration(values: dict[str, Any]) -> RanchConfiguration:
    try:
        return RanchConfiguration.model_validate(values)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid ranch configuration",
            [f"configuration.{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
             for err in e.errors()],
        )


class RanchDirectory:
    """
    Application service for ranch-level operations.

    Composes the geo validator for create/update checks and the herd
    statistics aggregator for summary columns and dashboards.
    """

    def __init__(
        self,
        repository: RanchRepository,
        statistics: HerdStatisticsAggregator,
        pasture_store: PastureStore,
        locks: RanchLockRegistry,
        image_service: Optional[ImageService] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            repository: Persistence interface for ranch aggregates
            statistics: Herd statistics aggregator
            pasture_store: Used to add initial pastures on creation
            locks: Per-ranch lock registry shared by all mutating services
            image_service: Image processing service for ranch photos
            timeout: Default timeout for persistence calls in seconds
        """
        self.repository = repository
        self.statistics = statistics
        self.pasture_store = pasture_store
        self.locks = locks
        self.image_service = image_service
        self.timeout = timeout or settings.persistence_timeout_seconds

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    async def list_ranches(
        self,
        ranch_filter: Optional[RanchFilter] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: SortField = SortField.NAME,
        sort_order: SortOrder = SortOrder.ASC,
    ) -> RanchPage:
        """
        List ranches matching a filter, one page at a time.

        Args:
            ranch_filter: Optional search/state/municipality/status filter
            page: 1-indexed page number
            page_size: Ranches per page
            sort_field: Field to sort by (name or created_at)
            sort_order: Ascending or descending

        Returns:
            RanchPage with summary counts per ranch and pagination metadata
        """
        ranch_filter = ranch_filter or RanchFilter()
        if page_size is None:
            page_size = settings.default_page_size
        problems = []
        if page < 1:
            problems.append(f"page: must be at least 1, got {page}")
        if not 1 <= page_size <= settings.max_page_size:
            problems.append(
                f"page_size: must be between 1 and {settings.max_page_size}, got {page_size}"
            )
        if problems:
            raise ValidationError("Invalid pagination", problems)

        ranches, total = await with_timeout(
            self.repository.list_ranches(
                ranch_filter,
                offset=(page - 1) * page_size,
                limit=page_size,
                sort_field=sort_field,
                sort_order=sort_order,
            ),
            self.timeout,
            "list ranches",
        )
        counts = await asyncio.gather(
            *(self.statistics.count_summary(r.id) for r in ranches)
        )

        total_pages = math.ceil(total / page_size)
        return RanchPage(
            ranches=[RanchSummary(ranch=r, counts=c) for r, c in zip(ranches, counts)],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total_items=total,
                items_per_page=page_size,
                has_next_page=page < total_pages,
                has_prev_page=page > 1,
            ),
        )

    async def get(self, ranch_id: str) -> RanchDetail:
        ranch = await self._load(ranch_id)
        counts = await self.statistics.count_summary(ranch_id)
        return RanchDetail(ranch=ranch, counts=counts)

    async def dashboard(self, ranch_id: str, period_days: Optional[int] = None) -> RanchDashboard:
        """
        Ranch dashboard: the ranch plus a fresh statistics snapshot.

        Raises:
            NotFoundError: If the ranch does not exist
        """
        ranch = await self._load(ranch_id)
        if period_days is None:
            period_days = settings.default_period_days
        snapshot = await self.statistics.compute_snapshot(ranch_id, period_days)
        return RanchDashboard(ranch=ranch, statistics=snapshot)

    def list_municipalities(self) -> list[Municipality]:
        return geo_validator.list_municipalities()

    # --------------------------------------------------------
    # Commands
    # --------------------------------------------------------

    async def create(self, spec: RanchCreate, owner_id: str) -> Ranch:
        """
        Create a ranch owned by ``owner_id``.

        Location and municipality are validated before anything is stored.
        Deployment default configuration is merged under the caller's
        overrides. Initial pastures go through PastureStore.

        Raises:
            ValidationError: Naming every failed check
        """
        problems = geo_validator.validate_location(
            spec.location.latitude, spec.location.longitude, spec.municipality
        )
        problems.extend(self._area_problems(spec.total_area_hectares, spec.pasture_area_hectares))
        if problems:
            raise ValidationError(f"Invalid ranch '{spec.name}'", problems)

        configuration = _build_configuration(
            deep_merge(
                default_configuration(spec.operation_type, spec.management_system),
                spec.configuration,
            )
        )
        now = utcnow()
        ranch = Ranch(
            id=uuid.uuid4().hex,
            name=spec.name,
            description=spec.description,
            total_area_hectares=spec.total_area_hectares,
            pasture_area_hectares=spec.pasture_area_hectares,
            address=spec.address,
            municipality=spec.municipality,
            postal_code=spec.postal_code,
            location=spec.location,
            operation_type=spec.operation_type,
            management_system=spec.management_system,
            infrastructure=dict(spec.infrastructure),
            configuration=configuration,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        for pasture_spec in spec.pastures:
            self.pasture_store.add_pasture(ranch, pasture_spec)

        created = await with_timeout(
            self.repository.insert_ranch(ranch), self.timeout, "insert ranch"
        )
        logger.info(f"Created ranch {created.id} ('{created.name}') for owner {owner_id}")
        return created

    async def update(self, ranch_id: str, patch: RanchPatch, requesting_user_id: str) -> Ranch:
        """
        Apply a partial update to a ranch.

        Raises:
            NotFoundError: If the ranch does not exist
            AuthorizationError: If the user does not own the ranch
            ValidationError: If a patched location or municipality is invalid
        """
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        async with self.locks.hold(ranch_id):
            ranch = await self._load_owned(ranch_id, requesting_user_id)

            location = patch.location if "location" in changes else None
            problems = geo_validator.validate_location(
                location.latitude if location else None,
                location.longitude if location else None,
                patch.municipality if "municipality" in changes else None,
            )
            problems.extend(self._area_problems(
                changes.get("total_area_hectares", ranch.total_area_hectares),
                changes.get("pasture_area_hectares", ranch.pasture_area_hectares),
            ))
            if problems:
                raise ValidationError(f"Invalid update for ranch {ranch_id}", problems)

            configuration_patch = changes.pop("configuration", None)
            merged = {**ranch.model_dump(), **changes}
            if configuration_patch:
                merged["configuration"] = _build_configuration(
                    deep_merge(ranch.configuration.model_dump(), configuration_patch)
                ).model_dump()
            merged["updated_at"] = utcnow()
            updated = Ranch.model_validate(merged)

            saved = await with_timeout(
                self.repository.save_ranch(updated, ranch.version), self.timeout, "save ranch"
            )
        logger.info(f"Updated ranch {ranch_id}: {sorted(patch.model_fields_set)}")
        return saved

    async def delete(self, ranch_id: str, requesting_user_id: str) -> None:
        """
        Delete a ranch that has no remaining herd.

        Raises:
            NotFoundError: If the ranch does not exist
            AuthorizationError: If the user does not own the ranch
            ConflictError: If any non-sold animal still belongs to the ranch
        """
        async with self.locks.hold(ranch_id):
            await self._load_owned(ranch_id, requesting_user_id)
            active = await with_timeout(
                self.repository.count_animals(ranch_id), self.timeout, "count animals"
            )
            if active > 0:
                raise ConflictError(
                    f"Ranch {ranch_id} still has {active} active bovines; "
                    f"relocate or sell them before deleting"
                )
            await with_timeout(
                self.repository.delete_ranch(ranch_id), self.timeout, "delete ranch"
            )
        logger.info(f"Deleted ranch {ranch_id}")

    async def attach_image(
        self, ranch_id: str, upload_path: str, requesting_user_id: str
    ) -> Ranch:
        """
        Process an uploaded photo and store its URL on the ranch.

        If processing fails the unprocessed upload URL is stored instead.
        """
        if self.image_service is None:
            raise ImageProcessingError("No image service configured")

        async with self.locks.hold(ranch_id):
            ranch = await self._load_owned(ranch_id, requesting_user_id)
            try:
                image_url = await with_timeout(
                    self.image_service.process_image(upload_path), self.timeout, "process image"
                )
            except ImageProcessingError as e:
                logger.warning(f"Error processing image for ranch {ranch_id}, storing original: {e}")
                image_url = self.image_service.file_url(upload_path)

            version = ranch.version
            ranch.image_url = image_url
            ranch.updated_at = utcnow()
            return await with_timeout(
                self.repository.save_ranch(ranch, version), self.timeout, "save ranch"
            )

    # --------------------------------------------------------
    # Internals
    # --------------------------------------------------------

    async def _load(self, ranch_id: str) -> Ranch:
        return await with_timeout(self.repository.get_ranch(ranch_id), self.timeout, "load ranch")

    async def _load_owned(self, ranch_id: str, requesting_user_id: str) -> Ranch:
        ranch = await self._load(ranch_id)
        if ranch.owner_id != requesting_user_id:
            raise AuthorizationError(
                f"User {requesting_user_id} does not own ranch {ranch_id}"
            )
        return ranch

    @staticmethod
    def _area_problems(total_area: float, pasture_area: float) -> list[str]:
        problems = []
        if total_area <= 0:
            problems.append(f"total_area_hectares: must be positive, got {total_area}")
        if pasture_area < 0:
            problems.append(f"pasture_area_hectares: must not be negative, got {pasture_area}")
        return problems
