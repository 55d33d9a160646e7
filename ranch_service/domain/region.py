"""
Governed region constants.

The bounding box and municipality whitelist are fixed for a deployment and
loaded once at import time. They are exposed as immutable values only.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive latitude/longitude bounding box in degrees."""
    north: float
    south: float
    east: float
    west: float


REGION_STATE = "Tabasco"
REGION_COUNTRY = "México"

REGION_BOUNDS = BoundingBox(
    north=18.5,
    south=17.3,
    east=-91.0,
    west=-94.8,
)

MUNICIPALITIES: tuple[str, ...] = (
    "Balancán",
    "Cárdenas",
    "Centla",
    "Centro",
    "Comalcalco",
    "Cunduacán",
    "Emiliano Zapata",
    "Huimanguillo",
    "Jalapa",
    "Jalpa de Méndez",
    "Jonuta",
    "Macuspana",
    "Nacajuca",
    "Paraíso",
    "Tacotalpa",
    "Teapa",
    "Tenosique",
)

MUNICIPALITY_SET: frozenset[str] = frozenset(MUNICIPALITIES)
