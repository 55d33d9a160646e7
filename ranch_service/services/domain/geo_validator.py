"""
Domain service: validation of locations against the governed region.

All functions are pure and total. They never raise; callers treat a False
result (or a non-empty problem list) as a validation error.
"""
from ranch_service.domain.models import Coordinates, Municipality
from ranch_service.domain.region import (
    MUNICIPALITIES,
    MUNICIPALITY_SET,
    REGION_BOUNDS,
    REGION_COUNTRY,
    REGION_STATE,
)
from ranch_service.utils.spatial_helpers import boundary_problems


def is_within_region(lat: float, lng: float) -> bool:
    """
    Check whether a point lies inside the region bounding box.

    Boundary values are inside.

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees

    Returns:
        True if the point is inside the bounding box
    """
    return (
        REGION_BOUNDS.south <= lat <= REGION_BOUNDS.north
        and REGION_BOUNDS.west <= lng <= REGION_BOUNDS.east
    )


def is_valid_municipality(name: str) -> bool:
    """Case-sensitive exact membership in the municipality whitelist."""
    return name in MUNICIPALITY_SET


def validate_location(
    lat: float | None,
    lng: float | None,
    municipality: str | None,
) -> list[str]:
    """
    Run the region checks that apply to the given fields.

    Fields passed as None are not checked, so the same function serves
    ranch creation and partial updates.

    Returns:
        Names of the failed checks with a short reason each
    """
    problems = []
    if lat is not None and lng is not None and not is_within_region(lat, lng):
        problems.append(
            f"location: coordinates ({lat}, {lng}) are outside {REGION_STATE}"
        )
    if municipality is not None and not is_valid_municipality(municipality):
        problems.append(
            f"municipality: '{municipality}' is not a municipality of {REGION_STATE}"
        )
    return problems


def validate_boundary(coordinates: list[Coordinates]) -> list[str]:
    """
    Validate a pasture boundary polygon.

    Every vertex must be inside the region and the vertices must form a
    simple polygon. An empty boundary is accepted.
    """
    problems = [
        f"coordinates[{index}]: vertex ({c.latitude}, {c.longitude}) is outside {REGION_STATE}"
        for index, c in enumerate(coordinates)
        if not is_within_region(c.latitude, c.longitude)
    ]
    if problems:
        return problems
    return [
        f"coordinates: {problem}"
        for problem in boundary_problems([(c.latitude, c.longitude) for c in coordinates])
    ]


def list_municipalities() -> list[Municipality]:
    return [
        Municipality(name=name, state=REGION_STATE, country=REGION_COUNTRY)
        for name in MUNICIPALITIES
    ]
