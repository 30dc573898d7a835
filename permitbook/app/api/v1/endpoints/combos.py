"""
Equipment Combo API Endpoints.

Coupling, decoupling and the "in use by" claim. Any company member may
couple, decouple and claim; editing and deleting combos is admin only.
"""

from fastapi import APIRouter, Depends, status, Path, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.db.session import get_db
from permitbook.app.core.context import RequestContext
from permitbook.app.core.dependencies import get_request_context
from permitbook.app.core.guards import require_admin
from permitbook.app.schemas.combo import (
    CoupleRequest, ComboUpdate, ComboResponse, ComboListResponse, DecoupleResponse
)
from permitbook.app.services import coupling

router = APIRouter(prefix="/combos", tags=["Combos"])


@router.post("", response_model=ComboResponse, status_code=status.HTTP_201_CREATED)
async def couple_equipment(
    request: CoupleRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Couple a truck to a trailer.

    Returns 409 naming the conflicting side when either unit is already
    part of an active combo.
    """
    record = await coupling.couple(
        db, ctx,
        truck_id=request.truck_id,
        trailer_id=request.trailer_id,
        tare_lbs=request.tare_lbs,
        target_weight=request.target_weight,
        combo_name=request.combo_name,
        claim=request.claim,
    )
    return ComboResponse.from_record(record)


@router.get("", response_model=ComboListResponse)
async def list_combos(
    include_inactive: bool = Query(False, description="Include decoupled combos"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    records = await coupling.list_combos(db, ctx, include_inactive=include_inactive)
    return ComboListResponse(combos=[ComboResponse.from_record(r) for r in records], total=len(records))


@router.get("/{combo_id}", response_model=ComboResponse)
async def get_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    record = await coupling.get_combo(db, ctx, combo_id)
    return ComboResponse.from_record(record)


@router.patch("/{combo_id}", response_model=ComboResponse)
async def edit_combo(
    changes: ComboUpdate,
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Edit a combo (admin only). Re-pointing re-validates the coupling rules."""
    record = await coupling.edit_combo(db, ctx, combo_id, **changes.model_dump(exclude_unset=True))
    return ComboResponse.from_record(record)


@router.post("/{combo_id}/decouple", response_model=DecoupleResponse)
async def decouple_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate a combo. Safe to repeat."""
    result = await coupling.decouple(db, ctx, combo_id)
    return DecoupleResponse(combo_id=result.combo_id, active=result.active, changed=result.changed)


@router.delete("/{combo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await coupling.delete_combo(db, ctx, combo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{combo_id}/claim", response_model=ComboResponse)
async def claim_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Mark the combo as in use by the caller."""
    record = await coupling.claim_combo(db, ctx, combo_id)
    return ComboResponse.from_record(record)


@router.post("/{combo_id}/slip-seat", response_model=ComboResponse)
async def slip_seat_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Take over a combo another driver is using."""
    record = await coupling.slip_seat_combo(db, ctx, combo_id)
    return ComboResponse.from_record(record)


@router.post("/{combo_id}/release", response_model=ComboResponse)
async def release_combo(
    combo_id: int = Path(..., description="Combo ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    record = await coupling.release_claim(db, ctx, combo_id)
    return ComboResponse.from_record(record)
