"""
Equipment Registry API Endpoints.

Trucks and trailers of the caller's company. Reads are open to every
member; writes are admin only.
"""

from fastapi import APIRouter, Depends, status, Path
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.db.session import get_db
from permitbook.app.core.context import RequestContext
from permitbook.app.core.dependencies import get_request_context
from permitbook.app.core.guards import require_admin
from permitbook.app.schemas.equipment import (
    TruckPayload, TrailerPayload, ActivePayload,
    TruckResponse, TrailerResponse, TruckListResponse, TrailerListResponse, AvailableEquipmentResponse
)
from permitbook.app.services import equipment as registry

router = APIRouter(prefix="/equipment", tags=["Equipment"])


# ---------------------------------------------------------------------------
# Trucks
# ---------------------------------------------------------------------------

@router.post("/trucks", response_model=TruckResponse, status_code=status.HTTP_201_CREATED)
async def create_truck(
    payload: TruckPayload,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Add a truck (admin only)."""
    record = await registry.create_truck(db, ctx, payload)
    return TruckResponse.from_record(record)


@router.get("/trucks", response_model=TruckListResponse)
async def list_trucks(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    All trucks of the company.

    Each truck carries its classified permits, its active combo and the
    driver currently using it.
    """
    records = await registry.list_trucks(db, ctx)
    return TruckListResponse(trucks=[TruckResponse.from_record(r) for r in records], total=len(records))


@router.get("/trucks/{truck_id}", response_model=TruckResponse)
async def get_truck(
    truck_id: int = Path(..., description="Truck ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    record = await registry.get_truck(db, ctx, truck_id)
    return TruckResponse.from_record(record)


@router.put("/trucks/{truck_id}", response_model=TruckResponse)
async def update_truck(
    payload: TruckPayload,
    truck_id: int = Path(..., description="Truck ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Replace every field of a truck, other permits included (admin only)."""
    record = await registry.update_truck(db, ctx, truck_id, payload)
    return TruckResponse.from_record(record)


@router.patch("/trucks/{truck_id}/active", response_model=TruckResponse)
async def set_truck_active(
    payload: ActivePayload,
    truck_id: int = Path(..., description="Truck ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await registry.set_active(db, ctx, "truck", truck_id, payload.active)
    record = await registry.get_truck(db, ctx, truck_id)
    return TruckResponse.from_record(record)


@router.delete("/trucks/{truck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_truck(
    truck_id: int = Path(..., description="Truck ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Hard-delete a truck (admin only).

    Returns 400 if the truck is still coupled; decouple first.
    """
    await registry.delete_truck(db, ctx, truck_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Trailers
# ---------------------------------------------------------------------------

@router.post("/trailers", response_model=TrailerResponse, status_code=status.HTTP_201_CREATED)
async def create_trailer(
    payload: TrailerPayload,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Add a trailer with its compartments (admin only)."""
    record = await registry.create_trailer(db, ctx, payload)
    return TrailerResponse.from_record(record)


@router.get("/trailers", response_model=TrailerListResponse)
async def list_trailers(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    records = await registry.list_trailers(db, ctx)
    return TrailerListResponse(trailers=[TrailerResponse.from_record(r) for r in records], total=len(records))


@router.get("/trailers/{trailer_id}", response_model=TrailerResponse)
async def get_trailer(
    trailer_id: int = Path(..., description="Trailer ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    record = await registry.get_trailer(db, ctx, trailer_id)
    return TrailerResponse.from_record(record)


@router.put("/trailers/{trailer_id}", response_model=TrailerResponse)
async def update_trailer(
    payload: TrailerPayload,
    trailer_id: int = Path(..., description="Trailer ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace every field of a trailer and its compartment set (admin only).

    Rejected as a whole when any compartment has max gallons <= 0.
    """
    record = await registry.update_trailer(db, ctx, trailer_id, payload)
    return TrailerResponse.from_record(record)


@router.patch("/trailers/{trailer_id}/active", response_model=TrailerResponse)
async def set_trailer_active(
    payload: ActivePayload,
    trailer_id: int = Path(..., description="Trailer ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await registry.set_active(db, ctx, "trailer", trailer_id, payload.active)
    record = await registry.get_trailer(db, ctx, trailer_id)
    return TrailerResponse.from_record(record)


@router.delete("/trailers/{trailer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trailer(
    trailer_id: int = Path(..., description="Trailer ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await registry.delete_trailer(db, ctx, trailer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

@router.get("/available", response_model=AvailableEquipmentResponse)
async def list_available_equipment(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Active trucks and trailers that are not part of any active combo."""
    trucks, trailers = await registry.list_available_equipment(db, ctx)
    return AvailableEquipmentResponse(
        trucks=[TruckResponse.from_record(r) for r in trucks],
        trailers=[TrailerResponse.from_record(r) for r in trailers],
    )
