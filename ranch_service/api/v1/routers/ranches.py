"""
API router for ranch and pasture endpoints.

Routes only translate HTTP to service calls. Domain errors are mapped to
status codes by the registered exception handler.
"""
from fastapi import APIRouter, Path, Query, status
from typing import Annotated, Optional

from ranch_service.api.dependencies import (
    CurrentUserDep,
    PastureServiceDep,
    RanchDirectoryDep,
)
from ranch_service.api.v1.models.responses import (
    ImageAttachRequest,
    MunicipalitiesResponse,
    RotationRequest,
    RotationResponse,
)
from ranch_service.domain.models import (
    Pasture,
    PastureOverview,
    PasturePatch,
    PastureSpec,
    Ranch,
    RanchCreate,
    RanchDashboard,
    RanchDetail,
    RanchFilter,
    RanchPage,
    RanchPatch,
    RanchStatus,
    SortField,
    SortOrder,
)
from ranch_service.domain.region import REGION_STATE


router = APIRouter(
    prefix="/ranches",
    tags=["ranches"],
    responses={
        429: {"description": "Rate limit exceeded"},
    },
)

RanchIdPath = Annotated[str, Path(description="Unique identifier for the ranch")]
PastureIdPath = Annotated[str, Path(description="Pasture identifier within the ranch")]


@router.get("/", response_model=RanchPage, summary="List ranches")
async def list_ranches(
    directory: RanchDirectoryDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
    search: Optional[str] = None,
    state: Optional[str] = None,
    municipality: Optional[str] = None,
    ranch_status: Annotated[Optional[RanchStatus], Query(alias="status")] = None,
    sort_by: SortField = SortField.NAME,
    sort_order: SortOrder = SortOrder.ASC,
) -> RanchPage:
    """
    List ranches with filters and pagination.

    Search is a case-insensitive substring match on the ranch name.
    """
    return await directory.list_ranches(
        RanchFilter(
            search=search,
            state=state,
            municipality=municipality,
            status=ranch_status,
        ),
        page=page,
        page_size=limit,
        sort_field=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/municipalities",
    response_model=MunicipalitiesResponse,
    summary="List accepted municipalities",
)
async def list_municipalities(directory: RanchDirectoryDep) -> MunicipalitiesResponse:
    municipalities = directory.list_municipalities()
    return MunicipalitiesResponse(
        state=REGION_STATE,
        municipalities=municipalities,
        total_municipalities=len(municipalities),
    )


@router.post(
    "/",
    response_model=Ranch,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ranch",
    responses={400: {"description": "Location or municipality outside the region"}},
)
async def create_ranch(
    spec: RanchCreate,
    directory: RanchDirectoryDep,
    user_id: CurrentUserDep,
) -> Ranch:
    return await directory.create(spec, owner_id=user_id)


@router.get(
    "/{ranch_id}",
    response_model=RanchDetail,
    summary="Get a ranch",
    responses={404: {"description": "Ranch not found"}},
)
async def get_ranch(ranch_id: RanchIdPath, directory: RanchDirectoryDep) -> RanchDetail:
    return await directory.get(ranch_id)


@router.patch(
    "/{ranch_id}",
    response_model=Ranch,
    summary="Update a ranch",
    responses={
        400: {"description": "Invalid location or municipality"},
        403: {"description": "User does not own the ranch"},
        404: {"description": "Ranch not found"},
    },
)
async def update_ranch(
    ranch_id: RanchIdPath,
    patch: RanchPatch,
    directory: RanchDirectoryDep,
    user_id: CurrentUserDep,
) -> Ranch:
    return await directory.update(ranch_id, patch, requesting_user_id=user_id)


@router.delete(
    "/{ranch_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a ranch",
    responses={
        403: {"description": "User does not own the ranch"},
        404: {"description": "Ranch not found"},
        409: {"description": "Ranch still has active bovines"},
    },
)
async def delete_ranch(
    ranch_id: RanchIdPath,
    directory: RanchDirectoryDep,
    user_id: CurrentUserDep,
) -> None:
    await directory.delete(ranch_id, requesting_user_id=user_id)


@router.put("/{ranch_id}/image", response_model=Ranch, summary="Attach a ranch photo")
async def attach_image(
    ranch_id: RanchIdPath,
    body: ImageAttachRequest,
    directory: RanchDirectoryDep,
    user_id: CurrentUserDep,
) -> Ranch:
    return await directory.attach_image(ranch_id, body.upload_path, requesting_user_id=user_id)


@router.get(
    "/{ranch_id}/dashboard",
    response_model=RanchDashboard,
    summary="Ranch dashboard statistics",
)
async def get_dashboard(
    ranch_id: RanchIdPath,
    directory: RanchDirectoryDep,
    period: Annotated[Optional[int], Query(ge=1, description="Days of production history")] = None,
) -> RanchDashboard:
    return await directory.dashboard(ranch_id, period_days=period)


# ============================================================
# Pastures
# ============================================================

@router.get("/{ranch_id}/pastures", response_model=PastureOverview, summary="List pastures")
async def list_pastures(ranch_id: RanchIdPath, pastures: PastureServiceDep) -> PastureOverview:
    return await pastures.list_pastures(ranch_id)


@router.post(
    "/{ranch_id}/pastures",
    response_model=Pasture,
    status_code=status.HTTP_201_CREATED,
    summary="Add a pasture",
)
async def add_pasture(
    ranch_id: RanchIdPath,
    spec: PastureSpec,
    pastures: PastureServiceDep,
    user_id: CurrentUserDep,
) -> Pasture:
    return await pastures.add_pasture(ranch_id, spec, requesting_user_id=user_id)


@router.patch(
    "/{ranch_id}/pastures/{pasture_id}",
    response_model=Pasture,
    summary="Update a pasture",
)
async def update_pasture(
    ranch_id: RanchIdPath,
    pasture_id: PastureIdPath,
    patch: PasturePatch,
    pastures: PastureServiceDep,
    user_id: CurrentUserDep,
) -> Pasture:
    return await pastures.update_pasture(ranch_id, pasture_id, patch, requesting_user_id=user_id)


@router.delete(
    "/{ranch_id}/pastures/{pasture_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a pasture",
    responses={409: {"description": "Pasture still holds bovines"}},
)
async def remove_pasture(
    ranch_id: RanchIdPath,
    pasture_id: PastureIdPath,
    pastures: PastureServiceDep,
    user_id: CurrentUserDep,
) -> None:
    await pastures.remove_pasture(ranch_id, pasture_id, requesting_user_id=user_id)


@router.post(
    "/{ranch_id}/pastures/rotations",
    response_model=RotationResponse,
    summary="Rotate bovines between pastures",
    responses={
        400: {"description": "Invalid quantity"},
        409: {"description": "Destination capacity exceeded or still resting"},
    },
)
async def rotate_bovines(
    ranch_id: RanchIdPath,
    body: RotationRequest,
    pastures: PastureServiceDep,
    user_id: CurrentUserDep,
) -> RotationResponse:
    source, destination = await pastures.rotate(
        ranch_id,
        body.from_pasture_id,
        body.to_pasture_id,
        body.quantity,
        requesting_user_id=user_id,
    )
    return RotationResponse(from_pasture=source, to_pasture=destination)
