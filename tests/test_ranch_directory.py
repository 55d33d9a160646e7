"""
Unit tests for the ranch directory.

Tests cover:
- Ranch creation with location checks and default configuration
- Listing, search, sorting and pagination
- Updates and deletion, including ownership checks
- Photo attachment with fallback
- Dashboards and dependency timeouts
"""
import asyncio
import pytest

from ranch_service.domain.errors import (
    AuthorizationError,
    ConflictError,
    DependencyTimeoutError,
    ImageProcessingError,
    NotFoundError,
    ValidationError,
)
from ranch_service.domain.models import (
    AnimalRecord,
    Coordinates,
    Gender,
    ManagementSystem,
    OperationType,
    PastureSpec,
    RanchCreate,
    RanchFilter,
    RanchPatch,
    RanchStatus,
    SortField,
    SortOrder,
)
from ranch_service.services.application.ranch_directory import (
    RanchDirectory,
    deep_merge,
    default_configuration,
)
from conftest import OTHER_USER_ID, OWNER_ID


def ranch_spec(**overrides) -> RanchCreate:
    fields = {
        "name": "Rancho El Ceibo",
        "total_area_hectares": 150.0,
        "municipality": "Centro",
        "location": Coordinates(latitude=17.98, longitude=-92.93),
        "operation_type": OperationType.DAIRY,
        "management_system": ManagementSystem.EXTENSIVE,
    }
    fields.update(overrides)
    return RanchCreate(**fields)


# ============================================================
# Configuration Helpers
# ============================================================

class TestDefaultConfiguration:
    """Tests for configuration defaults and merging."""

    def test_dairy_milks_twice(self):
        config = default_configuration(OperationType.DAIRY, ManagementSystem.EXTENSIVE)
        assert config["milking_schedule"]["times_per_day"] == 2

    def test_beef_milks_once(self):
        config = default_configuration(OperationType.BEEF, ManagementSystem.EXTENSIVE)
        assert config["milking_schedule"]["times_per_day"] == 1

    def test_intensive_systems_do_not_rotate(self):
        config = default_configuration(OperationType.MIXED, ManagementSystem.INTENSIVE)
        assert config["rotation"]["rotation_enabled"] is False

    def test_deep_merge_keeps_untouched_keys(self):
        base = {"rotation": {"rotation_days": 7, "rest_days": 21}, "flag": True}

        merged = deep_merge(base, {"rotation": {"rest_days": 30}})

        assert merged == {"rotation": {"rotation_days": 7, "rest_days": 30}, "flag": True}
        assert base["rotation"]["rest_days"] == 21


# ============================================================
# Create Tests
# ============================================================

class TestCreate:
    """Tests for RanchDirectory.create."""

    @pytest.mark.asyncio
    async def test_creates_ranch_with_defaults(self, directory, repository):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        stored = await repository.get_ranch(ranch.id)
        assert stored.owner_id == OWNER_ID
        assert stored.state_name == "Tabasco"
        assert stored.status == RanchStatus.ACTIVE
        assert stored.configuration.milking_schedule.times_per_day == 2
        assert stored.configuration.rotation.rest_days == 21

    @pytest.mark.asyncio
    async def test_configuration_overrides_are_merged(self, directory):
        spec = ranch_spec(configuration={"rotation": {"rest_days": 30}})

        ranch = await directory.create(spec, OWNER_ID)

        assert ranch.configuration.rotation.rest_days == 30
        assert ranch.configuration.rotation.rotation_days == 7

    @pytest.mark.asyncio
    async def test_invalid_configuration_rejected(self, directory, repository):
        spec = ranch_spec(configuration={"rotation": {"rest_days": "often"}})

        with pytest.raises(ValidationError) as exc_info:
            await directory.create(spec, OWNER_ID)

        assert exc_info.value.errors[0].startswith("configuration.rotation.rest_days")
        _, total = await repository.list_ranches(
            RanchFilter(), 0, 10, SortField.NAME, SortOrder.ASC
        )
        assert total == 0

    @pytest.mark.asyncio
    async def test_initial_pastures_are_added(self, directory):
        spec = ranch_spec(pastures=[
            PastureSpec(name="Norte", area_hectares=20.0, capacity_bovines=40),
            PastureSpec(name="Sur", area_hectares=15.0, capacity_bovines=30),
        ])

        ranch = await directory.create(spec, OWNER_ID)

        assert [p.name for p in ranch.pastures] == ["Norte", "Sur"]
        assert len({p.id for p in ranch.pastures}) == 2

    @pytest.mark.asyncio
    async def test_location_outside_region_rejected(self, directory):
        spec = ranch_spec(location=Coordinates(latitude=19.2, longitude=-99.1))

        with pytest.raises(ValidationError) as exc_info:
            await directory.create(spec, OWNER_ID)

        assert any(e.startswith("location") for e in exc_info.value.errors)

    @pytest.mark.asyncio
    async def test_every_failed_check_is_reported(self, directory):
        spec = ranch_spec(
            location=Coordinates(latitude=19.2, longitude=-99.1),
            municipality="Villahermosa",
            total_area_hectares=0,
        )

        with pytest.raises(ValidationError) as exc_info:
            await directory.create(spec, OWNER_ID)

        assert len(exc_info.value.errors) == 3

    @pytest.mark.asyncio
    async def test_invalid_pasture_aborts_creation(self, directory, repository):
        spec = ranch_spec(pastures=[
            PastureSpec(name="Roto", area_hectares=5.0, capacity_bovines=-1),
        ])

        with pytest.raises(ValidationError):
            await directory.create(spec, OWNER_ID)

        _, total = await repository.list_ranches(
            RanchFilter(), 0, 10, SortField.NAME, SortOrder.ASC
        )
        assert total == 0


# ============================================================
# Listing Tests
# ============================================================

class TestListRanches:
    """Tests for RanchDirectory.list_ranches."""

    @pytest.mark.asyncio
    async def test_second_page_of_twenty_five(self, directory):
        """25 ranches in Centro, page 2 of size 10."""
        for i in range(25):
            await directory.create(ranch_spec(name=f"Rancho {i:02d}"), OWNER_ID)

        page = await directory.list_ranches(
            RanchFilter(municipality="Centro"), page=2, page_size=10
        )

        assert len(page.ranches) == 10
        assert page.ranches[0].ranch.name == "Rancho 10"
        assert page.pagination.total_items == 25
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next_page is True
        assert page.pagination.has_prev_page is True

    @pytest.mark.asyncio
    async def test_last_page_is_partial(self, directory):
        for i in range(25):
            await directory.create(ranch_spec(name=f"Rancho {i:02d}"), OWNER_ID)

        page = await directory.list_ranches(page=3, page_size=10)

        assert len(page.ranches) == 5
        assert page.pagination.has_next_page is False

    @pytest.mark.asyncio
    async def test_empty_directory(self, directory):
        page = await directory.list_ranches()

        assert page.ranches == []
        assert page.pagination.total_pages == 0
        assert page.pagination.has_next_page is False

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, directory):
        await directory.create(ranch_spec(name="Rancho La Palma"), OWNER_ID)
        await directory.create(ranch_spec(name="Hacienda Santa Rosa"), OWNER_ID)

        page = await directory.list_ranches(RanchFilter(search="palma"))

        assert [s.ranch.name for s in page.ranches] == ["Rancho La Palma"]

    @pytest.mark.asyncio
    async def test_filter_by_municipality(self, directory):
        await directory.create(ranch_spec(name="A"), OWNER_ID)
        await directory.create(ranch_spec(name="B", municipality="Teapa"), OWNER_ID)

        page = await directory.list_ranches(RanchFilter(municipality="Teapa"))

        assert [s.ranch.name for s in page.ranches] == ["B"]

    @pytest.mark.asyncio
    async def test_sort_by_name_descending(self, directory):
        for name in ["beta", "Alfa", "Gamma"]:
            await directory.create(ranch_spec(name=name), OWNER_ID)

        page = await directory.list_ranches(
            sort_field=SortField.NAME, sort_order=SortOrder.DESC
        )

        assert [s.ranch.name for s in page.ranches] == ["Gamma", "beta", "Alfa"]

    @pytest.mark.asyncio
    async def test_summary_counts(self, directory, repository):
        ranch = await directory.create(ranch_spec(), OWNER_ID)
        repository.add_animal(AnimalRecord(id="c1", ranch_id=ranch.id, gender=Gender.FEMALE))
        repository.add_animal(AnimalRecord(id="b1", ranch_id=ranch.id, gender=Gender.MALE))

        page = await directory.list_ranches()

        counts = page.ranches[0].counts
        assert counts.active_bovines == 2
        assert counts.female_bovines == 1
        assert counts.male_bovines == 1

    @pytest.mark.asyncio
    async def test_page_size_defaults_when_omitted(self, directory):
        for i in range(12):
            await directory.create(ranch_spec(name=f"Rancho {i:02d}"), OWNER_ID)

        page = await directory.list_ranches()

        assert page.pagination.items_per_page == 10
        assert len(page.ranches) == 10

    @pytest.mark.asyncio
    async def test_zero_page_size_rejected(self, directory):
        """An explicit page size of zero is invalid, not a request for the default."""
        with pytest.raises(ValidationError) as exc_info:
            await directory.list_ranches(page=1, page_size=0)

        assert exc_info.value.errors[0].startswith("page_size")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 101)])
    async def test_invalid_pagination(self, directory, page, page_size):
        with pytest.raises(ValidationError):
            await directory.list_ranches(page=page, page_size=page_size)


# ============================================================
# Update Tests
# ============================================================

class TestUpdate:
    """Tests for RanchDirectory.update."""

    @pytest.mark.asyncio
    async def test_update_fields_and_version(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        updated = await directory.update(
            ranch.id, RanchPatch(name="Rancho Nuevo", municipality="Cárdenas"), OWNER_ID
        )

        assert updated.name == "Rancho Nuevo"
        assert updated.municipality == "Cárdenas"
        assert updated.version == ranch.version + 1
        assert updated.created_at == ranch.created_at

    @pytest.mark.asyncio
    async def test_configuration_patch_is_deep_merged(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        updated = await directory.update(
            ranch.id, RanchPatch(configuration={"alerts": {"low_milk_threshold": 8}}), OWNER_ID
        )

        assert updated.configuration.alerts.low_milk_threshold == 8
        assert updated.configuration.alerts.low_weight_threshold == 400

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        with pytest.raises(AuthorizationError):
            await directory.update(ranch.id, RanchPatch(name="Mío"), OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_invalid_municipality_rejected(self, directory, repository):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        with pytest.raises(ValidationError):
            await directory.update(ranch.id, RanchPatch(municipality="Mérida"), OWNER_ID)

        stored = await repository.get_ranch(ranch.id)
        assert stored.municipality == "Centro"

    @pytest.mark.asyncio
    async def test_unknown_ranch(self, directory):
        with pytest.raises(NotFoundError):
            await directory.update("nope", RanchPatch(name="x"), OWNER_ID)


# ============================================================
# Delete Tests
# ============================================================

class TestDelete:
    """Tests for RanchDirectory.delete."""

    @pytest.mark.asyncio
    async def test_ranch_with_herd_cannot_be_deleted(self, directory, repository):
        ranch = await directory.create(ranch_spec(), OWNER_ID)
        repository.add_animal(AnimalRecord(id="c1", ranch_id=ranch.id, gender=Gender.FEMALE))

        with pytest.raises(ConflictError):
            await directory.delete(ranch.id, OWNER_ID)

        assert (await repository.get_ranch(ranch.id)).id == ranch.id

    @pytest.mark.asyncio
    async def test_sold_animals_do_not_block_deletion(self, directory, repository):
        ranch = await directory.create(ranch_spec(), OWNER_ID)
        repository.add_animal(AnimalRecord(
            id="c1", ranch_id=ranch.id, gender=Gender.FEMALE, status="sold"
        ))

        await directory.delete(ranch.id, OWNER_ID)

        with pytest.raises(NotFoundError):
            await repository.get_ranch(ranch.id)

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        with pytest.raises(AuthorizationError):
            await directory.delete(ranch.id, OTHER_USER_ID)


# ============================================================
# Image Tests
# ============================================================

class TestAttachImage:
    """Tests for RanchDirectory.attach_image."""

    @pytest.mark.asyncio
    async def test_processed_url_is_stored(self, directory, mock_image_service):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        updated = await directory.attach_image(ranch.id, "uploads/ranch.jpg", OWNER_ID)

        assert updated.image_url == "https://img.example.com/processed/ranch.jpg"
        mock_image_service.process_image.assert_awaited_once_with("uploads/ranch.jpg")

    @pytest.mark.asyncio
    async def test_falls_back_to_original_upload(self, directory, mock_image_service):
        """A processing failure stores the unprocessed upload URL."""
        mock_image_service.process_image.side_effect = ImageProcessingError("resize failed")
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        updated = await directory.attach_image(ranch.id, "uploads/ranch.jpg", OWNER_ID)

        assert updated.image_url == "https://img.example.com/files/uploads/ranch.jpg"
        mock_image_service.file_url.assert_called_once_with("uploads/ranch.jpg")


# ============================================================
# Dashboard and Timeout Tests
# ============================================================

class TestDashboard:
    """Tests for RanchDirectory.dashboard and get."""

    @pytest.mark.asyncio
    async def test_dashboard_uses_default_period(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        dashboard = await directory.dashboard(ranch.id)

        assert dashboard.ranch.id == ranch.id
        assert dashboard.statistics.period_days == 30

    @pytest.mark.asyncio
    async def test_dashboard_for_unknown_ranch(self, directory):
        with pytest.raises(NotFoundError):
            await directory.dashboard("ranch-missing")

    @pytest.mark.asyncio
    async def test_get_includes_counts(self, directory):
        ranch = await directory.create(ranch_spec(), OWNER_ID)

        detail = await directory.get(ranch.id)

        assert detail.ranch.name == "Rancho El Ceibo"
        assert detail.counts.active_bovines == 0

    @pytest.mark.asyncio
    async def test_slow_backend_times_out(self, repository, aggregator, pasture_store, locks):
        """A persistence call exceeding the timeout surfaces as a timeout error."""
        async def slow_get(ranch_id):
            await asyncio.sleep(5)

        repository.get_ranch = slow_get
        directory = RanchDirectory(
            repository=repository,
            statistics=aggregator,
            pasture_store=pasture_store,
            locks=locks,
            timeout=0.05,
        )

        with pytest.raises(DependencyTimeoutError) as exc_info:
            await directory.get("ranch-1")

        assert isinstance(exc_info.value, TimeoutError)

    def test_municipalities(self, directory):
        assert len(directory.list_municipalities()) == 17


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
