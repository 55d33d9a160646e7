"""
Domain models for ranches, pastures and herd statistics.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_serializer

from ranch_service.domain.region import REGION_STATE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperationType(str, Enum):
    DAIRY = "dairy"
    BEEF = "beef"
    MIXED = "mixed"


class ManagementSystem(str, Enum):
    EXTENSIVE = "extensive"
    SEMI_INTENSIVE = "semi_intensive"
    INTENSIVE = "intensive"


class RanchStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class PastureType(str, Enum):
    NATURAL = "natural"
    IMPROVED = "improved"
    SILVOPASTORAL = "silvopastoral"


class PastureStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESTING = "resting"
    MAINTENANCE = "maintenance"


class Gender(str, Enum):
    FEMALE = "female"
    MALE = "male"


class Coordinates(BaseModel):
    """A single latitude/longitude point in degrees."""
    latitude: float
    longitude: float


# ============================================================
# Pastures
# ============================================================

class Pasture(BaseModel):
    """A grazing subdivision owned by exactly one ranch."""
    id: str
    name: str
    area_hectares: float
    capacity_bovines: int = Field(description="Maximum occupancy")
    current_bovines: int = Field(default=0, description="Current occupancy")
    pasture_type: PastureType = PastureType.NATURAL
    grass_species: set[str] = Field(default_factory=set)
    coordinates: List[Coordinates] = Field(default_factory=list)
    status: PastureStatus = PastureStatus.AVAILABLE
    rotation_schedule: Optional[str] = None
    resting_since: Optional[datetime] = None
    occupied_since: Optional[datetime] = None

    @field_serializer("grass_species")
    def _sorted_species(self, value: set[str]) -> list[str]:
        return sorted(value)


class PastureSpec(BaseModel):
    """Fields supplied when creating a pasture."""
    name: str
    area_hectares: float
    capacity_bovines: int
    pasture_type: PastureType = PastureType.NATURAL
    grass_species: set[str] = Field(default_factory=set)
    coordinates: List[Coordinates] = Field(default_factory=list)
    rotation_schedule: Optional[str] = None


class PasturePatch(BaseModel):
    """Partial update for a pasture. Only fields explicitly set are applied."""
    name: Optional[str] = None
    area_hectares: Optional[float] = None
    capacity_bovines: Optional[int] = None
    current_bovines: Optional[int] = None
    pasture_type: Optional[PastureType] = None
    grass_species: Optional[set[str]] = None
    coordinates: Optional[List[Coordinates]] = None
    status: Optional[PastureStatus] = None
    rotation_schedule: Optional[str] = None


# ============================================================
# Ranch configuration
# ============================================================

class MilkingSchedule(BaseModel):
    times_per_day: int = 2
    morning_time: str = "05:00"
    afternoon_time: str = "16:00"
    evening_time: Optional[str] = None


class FeedingSchedule(BaseModel):
    times_per_day: int = 2
    feeding_times: List[str] = Field(default_factory=lambda: ["07:00", "17:00"])


class RotationConfiguration(BaseModel):
    rotation_enabled: bool = True
    rotation_days: int = Field(default=7, description="Grazing period before a rotation is due")
    rest_days: int = Field(default=21, description="Minimum rest before a vacated pasture is reused")


class AlertsConfiguration(BaseModel):
    low_weight_threshold: float = Field(default=400, description="kg")
    low_milk_threshold: float = Field(default=10, description="litres")
    geofence_alerts: bool = True
    health_alerts: bool = True


class RanchConfiguration(BaseModel):
    milking_schedule: MilkingSchedule = Field(default_factory=MilkingSchedule)
    feeding_schedule: FeedingSchedule = Field(default_factory=FeedingSchedule)
    rotation: RotationConfiguration = Field(default_factory=RotationConfiguration)
    alerts: AlertsConfiguration = Field(default_factory=AlertsConfiguration)


# ============================================================
# Ranch aggregate
# ============================================================

class Ranch(BaseModel):
    """Ranch aggregate, including its embedded pastures."""
    id: str
    name: str
    description: Optional[str] = None
    total_area_hectares: float
    pasture_area_hectares: float = 0.0
    address: Optional[str] = None
    municipality: str
    state_name: str = REGION_STATE
    postal_code: Optional[str] = None
    location: Coordinates
    image_url: Optional[str] = None
    operation_type: OperationType
    management_system: ManagementSystem
    infrastructure: dict[str, Any] = Field(default_factory=dict)
    configuration: RanchConfiguration = Field(default_factory=RanchConfiguration)
    pastures: List[Pasture] = Field(default_factory=list)
    owner_id: str
    status: RanchStatus = RanchStatus.ACTIVE
    version: int = Field(default=0, description="Optimistic concurrency token")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class RanchCreate(BaseModel):
    """Fields supplied when creating a ranch."""
    name: str
    description: Optional[str] = None
    total_area_hectares: float
    pasture_area_hectares: float = 0.0
    address: Optional[str] = None
    municipality: str
    postal_code: Optional[str] = None
    location: Coordinates
    operation_type: OperationType = OperationType.MIXED
    management_system: ManagementSystem = ManagementSystem.EXTENSIVE
    infrastructure: dict[str, Any] = Field(default_factory=dict)
    configuration: dict[str, Any] = Field(
        default_factory=dict,
        description="Overrides merged over the deployment defaults"
    )
    pastures: List[PastureSpec] = Field(default_factory=list)


class RanchPatch(BaseModel):
    """Partial update for a ranch. Pastures are managed separately."""
    name: Optional[str] = None
    description: Optional[str] = None
    total_area_hectares: Optional[float] = None
    pasture_area_hectares: Optional[float] = None
    address: Optional[str] = None
    municipality: Optional[str] = None
    postal_code: Optional[str] = None
    location: Optional[Coordinates] = None
    operation_type: Optional[OperationType] = None
    management_system: Optional[ManagementSystem] = None
    infrastructure: Optional[dict[str, Any]] = None
    configuration: Optional[dict[str, Any]] = None
    status: Optional[RanchStatus] = None


class SortField(str, Enum):
    NAME = "name"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RanchFilter(BaseModel):
    search: Optional[str] = None
    state: Optional[str] = None
    municipality: Optional[str] = None
    status: Optional[RanchStatus] = None


class HerdCountSummary(BaseModel):
    """Summary columns shown next to a ranch in listings."""
    active_bovines: int = 0
    female_bovines: int = 0
    male_bovines: int = 0


class RanchSummary(BaseModel):
    ranch: Ranch
    counts: HerdCountSummary


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class RanchPage(BaseModel):
    ranches: List[RanchSummary]
    pagination: Pagination


# ============================================================
# Herd records (read through the persistence interface)
# ============================================================

class AnimalRecord(BaseModel):
    id: str
    ranch_id: str
    gender: Gender
    status: str = "active"


class ProductionRecord(BaseModel):
    ranch_id: str
    production_type: str
    value: float
    recorded_at: datetime = Field(default_factory=utcnow)


class EventRecord(BaseModel):
    id: str
    ranch_id: str
    bovine_id: Optional[str] = None
    event_type: str
    title: Optional[str] = None
    priority: str = "medium"
    status: str = "active"
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# Statistics
# ============================================================

class ProductionSummary(BaseModel):
    production_type: str
    total: float = 0.0
    average: float = 0.0
    record_count: int = 0


class PastureOccupancy(BaseModel):
    total_pastures: int = 0
    total_area_hectares: float = 0.0
    current_bovines: int = 0
    capacity_bovines: int = 0


class HerdStatisticsSnapshot(BaseModel):
    """Point-in-time statistics for a ranch. Never persisted."""
    ranch_id: str
    period_days: int
    female_count: int = 0
    male_count: int = 0
    total_count: int = 0
    production_summaries: List[ProductionSummary] = Field(default_factory=list)
    recent_events: List[EventRecord] = Field(default_factory=list)
    active_alert_count: int = 0
    pasture_occupancy: PastureOccupancy = Field(default_factory=PastureOccupancy)
    degraded_fields: List[str] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=utcnow)


class Municipality(BaseModel):
    name: str
    state: str
    country: str


class RanchDetail(BaseModel):
    ranch: Ranch
    counts: HerdCountSummary


class RanchDashboard(BaseModel):
    ranch: Ranch
    statistics: HerdStatisticsSnapshot


class PastureOverview(BaseModel):
    """Pastures of a ranch with derived totals."""
    pastures: List[Pasture]
    total_pastures: int
    total_area_hectares: float
    total_occupancy: int
    total_capacity: int
    due_rotations: List[Pasture] = Field(
        default_factory=list,
        description="Occupied pastures whose grazing period has elapsed"
    )
