"""
Equipment registry.

Trucks and trailers of one company: create, full-replace update, ordered
hard delete, and the active flag. Every read and write is filtered by
ctx.company_id; equipment of another company is reported as not found.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.context import RequestContext
from permitbook.app.core.exceptions import ValidationError, ResourceNotFoundError
from permitbook.app.core.reliability import storage_call
from permitbook.app.models.truck import Truck, TruckOtherPermit
from permitbook.app.models.trailer import Trailer, TrailerCompartment
from permitbook.app.models.equipment_combo import EquipmentCombo
from permitbook.app.schemas.equipment import TruckPayload, TrailerPayload
from permitbook.app.services.audit import record_event, AuditAction
from permitbook.app.services.compartments import CompartmentSet, Compartment, coerce_number

logger = logging.getLogger(__name__)


@dataclass
class TruckRecord:
    truck: Truck
    other_permits: List[TruckOtherPermit] = field(default_factory=list)
    combo: Optional[EquipmentCombo] = None


@dataclass
class TrailerRecord:
    trailer: Trailer
    compartments: List[TrailerCompartment] = field(default_factory=list)
    combo: Optional[EquipmentCombo] = None

    @property
    def total_capacity(self) -> float:
        return sum(c.max_gallons for c in self.compartments)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _required_name(value: Optional[str], kind: str) -> str:
    name = _clean(value)
    if not name:
        raise ValidationError(f"{kind} name is required.", field=f"{kind.lower()}_name")
    return name


async def _get_owned(db: AsyncSession, ctx: RequestContext, model, equipment_id: int, resource: str):
    result = await db.execute(
        select(model).where(model.id == equipment_id, model.company_id == ctx.company_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError(resource, equipment_id)
    return row


async def _active_combo_for(db: AsyncSession, column, equipment_id: int) -> Optional[EquipmentCombo]:
    result = await db.execute(
        select(EquipmentCombo).where(column == equipment_id, EquipmentCombo.active.is_(True))
    )
    return result.scalar_one_or_none()


async def _active_combos_by(db: AsyncSession, ctx: RequestContext, column) -> Dict[int, EquipmentCombo]:
    result = await db.execute(
        select(EquipmentCombo).where(
            EquipmentCombo.company_id == ctx.company_id,
            EquipmentCombo.active.is_(True)
        )
    )
    return {getattr(c, column.key): c for c in result.scalars().all()}


async def _ensure_not_coupled(db: AsyncSession, column, equipment_id: int, name: str, doing: str) -> None:
    combo = await _active_combo_for(db, column, equipment_id)
    if combo is not None:
        raise ValidationError(
            f"{name} is coupled in an active combo; decouple it before {doing}.",
            details={"combo_id": combo.id}
        )


# ---------------------------------------------------------------------------
# Trucks
# ---------------------------------------------------------------------------

def _apply_truck_payload(truck: Truck, payload: TruckPayload) -> List[TruckOtherPermit]:
    data = payload.model_dump(exclude={"other_permits"})
    data["truck_name"] = _required_name(payload.truck_name, "Truck")
    for key in ("vin_number", "make", "model", "region", "local_area", "status_code",
                "status_location", "inspection_shop", "notes"):
        data[key] = _clean(data[key])

    permits = []
    for permit in payload.other_permits:
        label = _clean(permit.label)
        if not label:
            raise ValidationError("Other permits need a label.", field="other_permits")
        permits.append(TruckOtherPermit(label=label, expiration_date=permit.expiration_date))

    for key, value in data.items():
        setattr(truck, key, value)
    return permits


async def _truck_other_permits(db: AsyncSession, truck_id: int) -> List[TruckOtherPermit]:
    result = await db.execute(
        select(TruckOtherPermit).where(TruckOtherPermit.truck_id == truck_id).order_by(TruckOtherPermit.id)
    )
    return list(result.scalars().all())


@storage_call()
async def create_truck(db: AsyncSession, ctx: RequestContext, payload: TruckPayload) -> TruckRecord:
    """Add a truck to the company (admin only)."""
    ctx.require_admin("add equipment")

    truck = Truck(company_id=ctx.company_id)
    permits = _apply_truck_payload(truck, payload)
    db.add(truck)
    await db.flush()

    for permit in permits:
        permit.truck_id = truck.id
        db.add(permit)

    record_event(db, ctx, AuditAction.EQUIPMENT_CREATED, "truck", truck.id,
                 {"truck_name": truck.truck_name})
    await db.commit()
    await db.refresh(truck)

    logger.info("Truck %s created for company %s", truck.id, ctx.company_id)
    return TruckRecord(truck=truck, other_permits=permits)


@storage_call()
async def update_truck(db: AsyncSession, ctx: RequestContext, truck_id: int, payload: TruckPayload) -> TruckRecord:
    """
    Replace a truck's fields and other permits (admin only).

    Deactivating a truck that is part of an active combo is rejected.
    """
    ctx.require_admin("edit equipment")
    truck = await _get_owned(db, ctx, Truck, truck_id, "Truck")

    if truck.active and not payload.active:
        await _ensure_not_coupled(db, EquipmentCombo.truck_id, truck.id, f"Truck {truck.truck_name}", "deactivating it")

    permits = _apply_truck_payload(truck, payload)
    await db.execute(delete(TruckOtherPermit).where(TruckOtherPermit.truck_id == truck.id))
    for permit in permits:
        permit.truck_id = truck.id
        db.add(permit)

    record_event(db, ctx, AuditAction.EQUIPMENT_UPDATED, "truck", truck.id,
                 {"truck_name": truck.truck_name})
    await db.commit()
    await db.refresh(truck)

    combo = await _active_combo_for(db, EquipmentCombo.truck_id, truck.id)
    return TruckRecord(truck=truck, other_permits=permits, combo=combo)


@storage_call()
async def delete_truck(db: AsyncSession, ctx: RequestContext, truck_id: int) -> None:
    """
    Hard-delete a truck (admin only).

    Order: other permits, decoupled combo history, then the truck. A truck
    in an active combo must be decoupled first.
    """
    ctx.require_admin("delete equipment")
    truck = await _get_owned(db, ctx, Truck, truck_id, "Truck")
    await _ensure_not_coupled(db, EquipmentCombo.truck_id, truck.id, f"Truck {truck.truck_name}", "deleting it")

    await db.execute(delete(TruckOtherPermit).where(TruckOtherPermit.truck_id == truck.id))
    await db.execute(delete(EquipmentCombo).where(EquipmentCombo.truck_id == truck.id))
    await db.delete(truck)

    record_event(db, ctx, AuditAction.EQUIPMENT_DELETED, "truck", truck_id,
                 {"truck_name": truck.truck_name})
    await db.commit()
    logger.info("Truck %s deleted from company %s", truck_id, ctx.company_id)


@storage_call()
async def get_truck(db: AsyncSession, ctx: RequestContext, truck_id: int) -> TruckRecord:
    truck = await _get_owned(db, ctx, Truck, truck_id, "Truck")
    return TruckRecord(
        truck=truck,
        other_permits=await _truck_other_permits(db, truck.id),
        combo=await _active_combo_for(db, EquipmentCombo.truck_id, truck.id),
    )


@storage_call()
async def list_trucks(db: AsyncSession, ctx: RequestContext) -> List[TruckRecord]:
    """All trucks of the company, annotated with their active combo."""
    result = await db.execute(
        select(Truck).where(Truck.company_id == ctx.company_id).order_by(Truck.truck_name, Truck.id)
    )
    trucks = list(result.scalars().all())

    permits_by_truck: Dict[int, List[TruckOtherPermit]] = {t.id: [] for t in trucks}
    if trucks:
        permit_result = await db.execute(
            select(TruckOtherPermit)
            .where(TruckOtherPermit.truck_id.in_(permits_by_truck.keys()))
            .order_by(TruckOtherPermit.id)
        )
        for permit in permit_result.scalars().all():
            permits_by_truck[permit.truck_id].append(permit)

    combos = await _active_combos_by(db, ctx, EquipmentCombo.truck_id)
    return [TruckRecord(truck=t, other_permits=permits_by_truck[t.id], combo=combos.get(t.id)) for t in trucks]


# ---------------------------------------------------------------------------
# Trailers
# ---------------------------------------------------------------------------

def _compartment_set(payload: TrailerPayload) -> CompartmentSet:
    comps = CompartmentSet(
        Compartment(
            comp_number=c.comp_number if c.comp_number is not None else i + 1,
            max_gallons=coerce_number(c.max_gallons),
            position=c.position if c.position is not None else i,
        )
        for i, c in enumerate(payload.compartments)
    )
    comps.validate()
    return comps


def _apply_trailer_payload(trailer: Trailer, payload: TrailerPayload) -> CompartmentSet:
    comps = _compartment_set(payload)

    cg_max = payload.cg_max if payload.cg_max is not None else 1.0
    if cg_max <= 0:
        raise ValidationError("CG max must be greater than zero.", field="cg_max")

    data = payload.model_dump(exclude={"compartments"})
    data["trailer_name"] = _required_name(payload.trailer_name, "Trailer")
    data["cg_max"] = cg_max
    for key in ("vin_number", "make", "model", "region", "local_area", "status_code",
                "status_location", "trailer_inspection_shop", "last_load_config", "notes"):
        data[key] = _clean(data[key])
    for key, value in data.items():
        setattr(trailer, key, value)
    return comps


def _compartment_rows(trailer_id: int, comps: CompartmentSet) -> List[TrailerCompartment]:
    return [
        TrailerCompartment(
            trailer_id=trailer_id,
            comp_number=c.comp_number,
            max_gallons=c.max_gallons,
            position=c.position,
        )
        for c in comps
    ]


async def _trailer_compartments(db: AsyncSession, trailer_id: int) -> List[TrailerCompartment]:
    result = await db.execute(
        select(TrailerCompartment)
        .where(TrailerCompartment.trailer_id == trailer_id)
        .order_by(TrailerCompartment.position)
    )
    return list(result.scalars().all())


@storage_call()
async def create_trailer(db: AsyncSession, ctx: RequestContext, payload: TrailerPayload) -> TrailerRecord:
    """Add a trailer and its compartments (admin only)."""
    ctx.require_admin("add equipment")

    trailer = Trailer(company_id=ctx.company_id)
    comps = _apply_trailer_payload(trailer, payload)
    db.add(trailer)
    await db.flush()

    rows = _compartment_rows(trailer.id, comps)
    db.add_all(rows)

    record_event(db, ctx, AuditAction.EQUIPMENT_CREATED, "trailer", trailer.id,
                 {"trailer_name": trailer.trailer_name, "total_capacity": comps.total_capacity})
    await db.commit()
    await db.refresh(trailer)

    logger.info("Trailer %s created for company %s", trailer.id, ctx.company_id)
    return TrailerRecord(trailer=trailer, compartments=rows)


@storage_call()
async def update_trailer(db: AsyncSession, ctx: RequestContext, trailer_id: int, payload: TrailerPayload) -> TrailerRecord:
    """
    Replace a trailer's fields and compartment set (admin only).

    The whole save is rejected if any compartment has max gallons <= 0.
    """
    ctx.require_admin("edit equipment")
    trailer = await _get_owned(db, ctx, Trailer, trailer_id, "Trailer")

    if trailer.active and not payload.active:
        await _ensure_not_coupled(db, EquipmentCombo.trailer_id, trailer.id,
                                  f"Trailer {trailer.trailer_name}", "deactivating it")

    comps = _apply_trailer_payload(trailer, payload)
    await db.execute(delete(TrailerCompartment).where(TrailerCompartment.trailer_id == trailer.id))
    rows = _compartment_rows(trailer.id, comps)
    db.add_all(rows)

    record_event(db, ctx, AuditAction.EQUIPMENT_UPDATED, "trailer", trailer.id,
                 {"trailer_name": trailer.trailer_name, "total_capacity": comps.total_capacity})
    await db.commit()
    await db.refresh(trailer)

    combo = await _active_combo_for(db, EquipmentCombo.trailer_id, trailer.id)
    return TrailerRecord(trailer=trailer, compartments=rows, combo=combo)


@storage_call()
async def delete_trailer(db: AsyncSession, ctx: RequestContext, trailer_id: int) -> None:
    """Hard-delete a trailer: compartments, decoupled combo history, then the trailer."""
    ctx.require_admin("delete equipment")
    trailer = await _get_owned(db, ctx, Trailer, trailer_id, "Trailer")
    await _ensure_not_coupled(db, EquipmentCombo.trailer_id, trailer.id,
                              f"Trailer {trailer.trailer_name}", "deleting it")

    await db.execute(delete(TrailerCompartment).where(TrailerCompartment.trailer_id == trailer.id))
    await db.execute(delete(EquipmentCombo).where(EquipmentCombo.trailer_id == trailer.id))
    await db.delete(trailer)

    record_event(db, ctx, AuditAction.EQUIPMENT_DELETED, "trailer", trailer_id,
                 {"trailer_name": trailer.trailer_name})
    await db.commit()
    logger.info("Trailer %s deleted from company %s", trailer_id, ctx.company_id)


@storage_call()
async def get_trailer(db: AsyncSession, ctx: RequestContext, trailer_id: int) -> TrailerRecord:
    trailer = await _get_owned(db, ctx, Trailer, trailer_id, "Trailer")
    return TrailerRecord(
        trailer=trailer,
        compartments=await _trailer_compartments(db, trailer.id),
        combo=await _active_combo_for(db, EquipmentCombo.trailer_id, trailer.id),
    )


@storage_call()
async def list_trailers(db: AsyncSession, ctx: RequestContext) -> List[TrailerRecord]:
    """All trailers of the company with compartments and active combo."""
    result = await db.execute(
        select(Trailer).where(Trailer.company_id == ctx.company_id).order_by(Trailer.trailer_name, Trailer.id)
    )
    trailers = list(result.scalars().all())

    comps_by_trailer: Dict[int, List[TrailerCompartment]] = {t.id: [] for t in trailers}
    if trailers:
        comp_result = await db.execute(
            select(TrailerCompartment)
            .where(TrailerCompartment.trailer_id.in_(comps_by_trailer.keys()))
            .order_by(TrailerCompartment.trailer_id, TrailerCompartment.position)
        )
        for comp in comp_result.scalars().all():
            comps_by_trailer[comp.trailer_id].append(comp)

    combos = await _active_combos_by(db, ctx, EquipmentCombo.trailer_id)
    return [
        TrailerRecord(trailer=t, compartments=comps_by_trailer[t.id], combo=combos.get(t.id))
        for t in trailers
    ]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

_LIFECYCLE = {
    "truck": (Truck, EquipmentCombo.truck_id, "truck_name"),
    "trailer": (Trailer, EquipmentCombo.trailer_id, "trailer_name"),
}


@storage_call()
async def set_active(db: AsyncSession, ctx: RequestContext, equipment_type: str, equipment_id: int, active: bool):
    """
    Set the active flag of a truck or trailer (admin only).

    Returns the updated row. Deactivating coupled equipment is rejected.
    """
    ctx.require_admin("change equipment status")
    model, combo_column, name_attr = _LIFECYCLE[equipment_type]
    row = await _get_owned(db, ctx, model, equipment_id, equipment_type.capitalize())

    if row.active == active:
        return row

    if not active:
        await _ensure_not_coupled(db, combo_column, row.id,
                                  f"{equipment_type.capitalize()} {getattr(row, name_attr)}", "deactivating it")

    row.active = active
    record_event(db, ctx, AuditAction.EQUIPMENT_ACTIVATION_CHANGED, equipment_type, row.id, {"active": active})
    await db.commit()
    await db.refresh(row)
    return row


@storage_call()
async def list_available_equipment(db: AsyncSession, ctx: RequestContext) -> tuple[List[TruckRecord], List[TrailerRecord]]:
    """
    Equipment that can be coupled right now: active and not referenced by
    any active combo.
    """
    trucks = [r for r in await list_trucks(db, ctx) if r.truck.active and r.combo is None]
    trailers = [r for r in await list_trailers(db, ctx) if r.trailer.active and r.combo is None]
    return trucks, trailers
