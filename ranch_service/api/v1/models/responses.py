"""
API request and response models using Pydantic.
"""
from typing import List
from pydantic import BaseModel, Field

from ranch_service.domain.models import Municipality, Pasture


class RotationRequest(BaseModel):
    """Request body for moving animals between pastures."""
    from_pasture_id: str = Field(description="Pasture the animals leave")
    to_pasture_id: str = Field(description="Pasture the animals enter")
    quantity: int = Field(description="Number of animals to move")

    class Config:
        json_schema_extra = {
            "example": {
                "from_pasture_id": "pasture_1718000000000",
                "to_pasture_id": "pasture_1718000000001",
                "quantity": 5,
            }
        }


class ImageAttachRequest(BaseModel):
    """Request body referencing an already uploaded ranch photo."""
    upload_path: str = Field(description="Path of the uploaded file")


class RotationResponse(BaseModel):
    """Both pastures after a rotation."""
    from_pasture: Pasture
    to_pasture: Pasture


class MunicipalitiesResponse(BaseModel):
    """Municipalities accepted for ranch locations."""
    state: str
    municipalities: List[Municipality]
    total_municipalities: int
