"""
Coupling manager.

Creates and dissolves combos (one truck coupled to one trailer) and
tracks the advisory "in use by" claim on them.

At most one active combo may reference a truck, and at most one may
reference a trailer. Couple and edit enforce this inside one database
transaction: both equipment rows are locked (SELECT ... FOR UPDATE), the
conflict check runs against committed state, and the partial unique
indexes on equipment_combos reject anything that slips past the check.
A unique-index violation is translated back into AlreadyCoupledError;
if the conflicting combo cannot be identified the operation fails with
StorageError rather than guessing.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, List, Tuple

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.config import settings
from permitbook.app.core.context import RequestContext
from permitbook.app.core.exceptions import (
    ValidationError, AlreadyCoupledError, ResourceNotFoundError, AuthorizationError, StorageError
)
from permitbook.app.core.reliability import storage_call
from permitbook.app.models.equipment_combo import EquipmentCombo
from permitbook.app.models.truck import Truck
from permitbook.app.models.trailer import Trailer
from permitbook.app.services.audit import record_event, AuditAction

logger = logging.getLogger(__name__)


@dataclass
class ComboRecord:
    combo: EquipmentCombo
    truck_name: Optional[str] = None
    trailer_name: Optional[str] = None


@dataclass
class DecoupleResult:
    combo_id: int
    active: bool
    changed: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _require_tare(tare_lbs: Optional[float]) -> float:
    if tare_lbs is None or not math.isfinite(tare_lbs) or tare_lbs <= 0:
        raise ValidationError("Tare weight is required and must be greater than zero.", field="tare_lbs")
    return float(tare_lbs)


def _target_weight(target_weight: Optional[float]) -> float:
    """Unset (None or 0) falls back to the configured default gross."""
    if target_weight is None or target_weight == 0:
        return float(settings.default_target_weight_lbs)
    if not math.isfinite(target_weight) or target_weight < 0:
        raise ValidationError("Target weight must be greater than zero.", field="target_weight")
    return float(target_weight)


def _combo_name(name: Optional[str], truck_name: str, trailer_name: str) -> str:
    name = (name or "").strip()
    return name or f"{truck_name} / {trailer_name}"


# ---------------------------------------------------------------------------
# Locking and conflict detection
# ---------------------------------------------------------------------------

async def _lock_equipment(
    db: AsyncSession,
    ctx: RequestContext,
    truck_id: int,
    trailer_id: int,
    require_active: bool = True
) -> Tuple[Truck, Trailer]:
    """
    Load and row-lock both pieces of equipment, truck first then trailer.

    Raises:
        ResourceNotFoundError: Either id is missing or belongs to another company
        ValidationError: require_active and either piece is inactive
    """
    truck = (await db.execute(
        select(Truck)
        .where(Truck.id == truck_id, Truck.company_id == ctx.company_id)
        .with_for_update()
    )).scalar_one_or_none()
    if truck is None:
        raise ResourceNotFoundError("Truck", truck_id)

    trailer = (await db.execute(
        select(Trailer)
        .where(Trailer.id == trailer_id, Trailer.company_id == ctx.company_id)
        .with_for_update()
    )).scalar_one_or_none()
    if trailer is None:
        raise ResourceNotFoundError("Trailer", trailer_id)

    if require_active:
        if not truck.active:
            raise ValidationError(f"Truck {truck.truck_name} is inactive and cannot be coupled.", field="truck_id")
        if not trailer.active:
            raise ValidationError(f"Trailer {trailer.trailer_name} is inactive and cannot be coupled.", field="trailer_id")

    return truck, trailer


async def _find_conflict(
    db: AsyncSession,
    truck_id: int,
    trailer_id: int,
    truck_name: Optional[str] = None,
    trailer_name: Optional[str] = None,
    exclude_combo_id: Optional[int] = None
) -> Optional[AlreadyCoupledError]:
    """Active combo (other than exclude_combo_id) holding either unit. Truck side reported first."""
    query = select(EquipmentCombo).where(
        EquipmentCombo.active.is_(True),
        or_(EquipmentCombo.truck_id == truck_id, EquipmentCombo.trailer_id == trailer_id)
    )
    if exclude_combo_id is not None:
        query = query.where(EquipmentCombo.id != exclude_combo_id)

    combos = (await db.execute(query.order_by(EquipmentCombo.id))).scalars().all()
    for combo in combos:
        if combo.truck_id == truck_id:
            return AlreadyCoupledError("truck", truck_id, truck_name, combo.id)
    for combo in combos:
        if combo.trailer_id == trailer_id:
            return AlreadyCoupledError("trailer", trailer_id, trailer_name, combo.id)
    return None


async def _assert_uncoupled(
    db: AsyncSession,
    truck_id: int,
    trailer_id: int,
    truck_name: Optional[str] = None,
    trailer_name: Optional[str] = None,
    exclude_combo_id: Optional[int] = None
) -> None:
    conflict = await _find_conflict(db, truck_id, trailer_id, truck_name, trailer_name, exclude_combo_id)
    if conflict is not None:
        raise conflict


async def _flush_combo(
    db: AsyncSession,
    truck_id: int,
    trailer_id: int,
    truck_name: str,
    trailer_name: str,
    exclude_combo_id: Optional[int] = None
) -> None:
    """
    Flush pending combo changes; a partial-index violation becomes
    AlreadyCoupledError, anything unexplained becomes StorageError.
    """
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Combo write for truck %s / trailer %s rejected by unique index", truck_id, trailer_id)
        conflict = await _find_conflict(db, truck_id, trailer_id, truck_name, trailer_name, exclude_combo_id)
        if conflict is not None:
            raise conflict
        raise StorageError("Combo could not be saved", cause=str(e.orig))


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def _get_combo(db: AsyncSession, ctx: RequestContext, combo_id: int, lock: bool = False) -> Optional[EquipmentCombo]:
    query = select(EquipmentCombo).where(
        EquipmentCombo.id == combo_id,
        EquipmentCombo.company_id == ctx.company_id
    )
    if lock:
        query = query.with_for_update()
    return (await db.execute(query)).scalar_one_or_none()


async def _require_combo(db: AsyncSession, ctx: RequestContext, combo_id: int, lock: bool = False) -> EquipmentCombo:
    combo = await _get_combo(db, ctx, combo_id, lock)
    if combo is None:
        raise ResourceNotFoundError("Combo", combo_id)
    return combo


async def _record(db: AsyncSession, combo: EquipmentCombo) -> ComboRecord:
    row = (await db.execute(
        select(Truck.truck_name, Trailer.trailer_name)
        .select_from(EquipmentCombo)
        .join(Truck, Truck.id == EquipmentCombo.truck_id)
        .join(Trailer, Trailer.id == EquipmentCombo.trailer_id)
        .where(EquipmentCombo.id == combo.id)
    )).one_or_none()
    if row is None:
        return ComboRecord(combo=combo)
    return ComboRecord(combo=combo, truck_name=row.truck_name, trailer_name=row.trailer_name)


async def _release_other_claims(db: AsyncSession, ctx: RequestContext, keep_combo_id: Optional[int]) -> None:
    """A driver runs one unit at a time: drop the caller's claims elsewhere in the company."""
    query = update(EquipmentCombo).where(
        EquipmentCombo.company_id == ctx.company_id,
        EquipmentCombo.claimed_by == ctx.user_id
    )
    if keep_combo_id is not None:
        query = query.where(EquipmentCombo.id != keep_combo_id)
    await db.execute(
        query.values(claimed_by=None, claimed_at=None)
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@storage_call()
async def couple(
    db: AsyncSession,
    ctx: RequestContext,
    truck_id: int,
    trailer_id: int,
    tare_lbs: Optional[float],
    target_weight: Optional[float] = None,
    combo_name: Optional[str] = None,
    claim: bool = False
) -> ComboRecord:
    """
    Couple a truck to a trailer.

    Args:
        db: Database session
        ctx: Caller context
        truck_id: Truck to couple
        trailer_id: Trailer to couple
        tare_lbs: Empty weight of the unit, required and > 0
        target_weight: Target gross; None or 0 uses the configured default
        combo_name: Display name; defaults to "{truck} / {trailer}"
        claim: Also claim the new combo for the caller

    Returns:
        ComboRecord of the new active combo

    Raises:
        ValidationError: Missing tare or inactive equipment
        ResourceNotFoundError: Unknown truck or trailer
        AlreadyCoupledError: Either unit is already in an active combo
    """
    tare = _require_tare(tare_lbs)
    target = _target_weight(target_weight)

    truck, trailer = await _lock_equipment(db, ctx, truck_id, trailer_id)
    # rollback expires ORM rows; keep plain values for error reporting
    truck_name, trailer_name = truck.truck_name, trailer.trailer_name

    await _assert_uncoupled(db, truck_id, trailer_id, truck_name, trailer_name)

    combo = EquipmentCombo(
        company_id=ctx.company_id,
        combo_name=_combo_name(combo_name, truck_name, trailer_name),
        truck_id=truck_id,
        trailer_id=trailer_id,
        tare_lbs=tare,
        target_weight=target,
        active=True,
    )
    if claim:
        await _release_other_claims(db, ctx, keep_combo_id=None)
        combo.claimed_by = ctx.user_id
        combo.claimed_at = _now()

    db.add(combo)
    await _flush_combo(db, truck_id, trailer_id, truck_name, trailer_name)

    record_event(db, ctx, AuditAction.COMBO_COUPLED, "combo", combo.id, {
        "truck_id": truck_id,
        "trailer_id": trailer_id,
        "tare_lbs": tare,
        "target_weight": target,
        "claimed": claim,
    })
    await db.commit()
    await db.refresh(combo)

    logger.info("Coupled truck %s to trailer %s as combo %s", truck_id, trailer_id, combo.id)
    return ComboRecord(combo=combo, truck_name=truck_name, trailer_name=trailer_name)


@storage_call()
async def decouple(db: AsyncSession, ctx: RequestContext, combo_id: int) -> DecoupleResult:
    """
    Deactivate a combo, keeping it as history.

    Idempotent: an inactive or unknown combo is a no-op (changed=False).
    Decoupling also clears the claim.
    """
    combo = await _get_combo(db, ctx, combo_id, lock=True)
    if combo is None or not combo.active:
        return DecoupleResult(combo_id=combo_id, active=False, changed=False)

    combo.active = False
    combo.decoupled_at = _now()
    combo.claimed_by = None
    combo.claimed_at = None

    record_event(db, ctx, AuditAction.COMBO_DECOUPLED, "combo", combo.id, {
        "truck_id": combo.truck_id,
        "trailer_id": combo.trailer_id,
    })
    await db.commit()

    logger.info("Decoupled combo %s", combo_id)
    return DecoupleResult(combo_id=combo_id, active=False, changed=True)


@storage_call()
async def edit_combo(
    db: AsyncSession,
    ctx: RequestContext,
    combo_id: int,
    truck_id: Optional[int] = None,
    trailer_id: Optional[int] = None,
    tare_lbs: Optional[float] = None,
    target_weight: Optional[float] = None,
    combo_name: Optional[str] = None
) -> ComboRecord:
    """
    Edit a combo (admin only). Arguments left as None are unchanged.

    Re-pointing an active combo re-validates the uniqueness invariant
    against every other active combo; on conflict nothing is changed.
    """
    ctx.require_admin("edit combos")
    combo = await _require_combo(db, ctx, combo_id, lock=True)

    new_truck_id = truck_id if truck_id is not None else combo.truck_id
    new_trailer_id = trailer_id if trailer_id is not None else combo.trailer_id
    repointed = new_truck_id != combo.truck_id or new_trailer_id != combo.trailer_id
    was_active = combo.active
    changes = {}

    # validate everything before touching the row
    if tare_lbs is not None:
        changes["tare_lbs"] = _require_tare(tare_lbs)
    if target_weight is not None:
        changes["target_weight"] = _target_weight(target_weight)

    truck, trailer = await _lock_equipment(db, ctx, new_truck_id, new_trailer_id,
                                           require_active=was_active and repointed)
    truck_name, trailer_name = truck.truck_name, trailer.trailer_name

    if repointed:
        if was_active:
            await _assert_uncoupled(db, new_truck_id, new_trailer_id, truck_name, trailer_name,
                                    exclude_combo_id=combo.id)
        changes.update(truck_id=new_truck_id, trailer_id=new_trailer_id)
    if combo_name is not None:
        changes["combo_name"] = _combo_name(combo_name, truck_name, trailer_name)
    elif repointed:
        # a defaulted name follows the equipment; a custom one is kept
        old = await _record(db, combo)
        if combo.combo_name == _combo_name(None, old.truck_name, old.trailer_name):
            changes["combo_name"] = _combo_name(None, truck_name, trailer_name)

    for key, value in changes.items():
        setattr(combo, key, value)
    await _flush_combo(db, new_truck_id, new_trailer_id, truck_name, trailer_name, exclude_combo_id=combo_id)

    record_event(db, ctx, AuditAction.COMBO_UPDATED, "combo", combo_id, changes)
    await db.commit()
    await db.refresh(combo)
    return ComboRecord(combo=combo, truck_name=truck_name, trailer_name=trailer_name)


@storage_call()
async def delete_combo(db: AsyncSession, ctx: RequestContext, combo_id: int) -> None:
    """Hard-delete a combo, active or not (admin only)."""
    ctx.require_admin("delete combos")
    combo = await _require_combo(db, ctx, combo_id, lock=True)

    meta = {"truck_id": combo.truck_id, "trailer_id": combo.trailer_id, "was_active": combo.active}
    await db.delete(combo)
    record_event(db, ctx, AuditAction.COMBO_DELETED, "combo", combo_id, meta)
    await db.commit()
    logger.info("Deleted combo %s", combo_id)


@storage_call()
async def claim_combo(db: AsyncSession, ctx: RequestContext, combo_id: int) -> ComboRecord:
    """
    Claim an active combo for the caller.

    Fails if another driver holds the claim (use slip_seat_combo to take
    over). Any other claim the caller holds in the company is released.
    """
    combo = await _require_combo(db, ctx, combo_id, lock=True)
    if not combo.active:
        raise ValidationError("Only active combos can be claimed.", details={"combo_id": combo_id})
    if combo.claimed_by is not None and combo.claimed_by != ctx.user_id:
        raise ValidationError(
            "Combo is in use by another driver.",
            details={"combo_id": combo_id, "claimed_by": combo.claimed_by}
        )

    if combo.claimed_by != ctx.user_id:
        await _release_other_claims(db, ctx, keep_combo_id=combo.id)
        combo.claimed_by = ctx.user_id
        combo.claimed_at = _now()
        record_event(db, ctx, AuditAction.COMBO_CLAIMED, "combo", combo.id, {"driver_id": ctx.user_id})
        await db.commit()
        await db.refresh(combo)

    return await _record(db, combo)


@storage_call()
async def slip_seat_combo(db: AsyncSession, ctx: RequestContext, combo_id: int) -> ComboRecord:
    """Take over an active combo regardless of who holds it."""
    combo = await _require_combo(db, ctx, combo_id, lock=True)
    if not combo.active:
        raise ValidationError("Only active combos can be claimed.", details={"combo_id": combo_id})

    previous = combo.claimed_by
    if previous != ctx.user_id:
        await _release_other_claims(db, ctx, keep_combo_id=combo.id)
        combo.claimed_by = ctx.user_id
        combo.claimed_at = _now()
        record_event(db, ctx, AuditAction.COMBO_CLAIMED, "combo", combo.id, {
            "driver_id": ctx.user_id,
            "slip_seat": True,
            "previous_driver_id": previous,
        })
        await db.commit()
        await db.refresh(combo)

    return await _record(db, combo)


@storage_call()
async def release_claim(db: AsyncSession, ctx: RequestContext, combo_id: int) -> ComboRecord:
    """Clear the claim. Only the claimant or an admin may release; unclaimed is a no-op."""
    combo = await _require_combo(db, ctx, combo_id, lock=True)
    if combo.claimed_by is None:
        return await _record(db, combo)
    if combo.claimed_by != ctx.user_id and not ctx.is_admin:
        raise AuthorizationError("Only the driver using this combo or an admin can release it")

    previous = combo.claimed_by
    combo.claimed_by = None
    combo.claimed_at = None
    record_event(db, ctx, AuditAction.COMBO_RELEASED, "combo", combo.id, {"driver_id": previous})
    await db.commit()
    await db.refresh(combo)
    return await _record(db, combo)


@storage_call()
async def get_combo(db: AsyncSession, ctx: RequestContext, combo_id: int) -> ComboRecord:
    combo = await _require_combo(db, ctx, combo_id)
    return await _record(db, combo)


@storage_call()
async def list_combos(db: AsyncSession, ctx: RequestContext, include_inactive: bool = False) -> List[ComboRecord]:
    """Company combos with equipment names, newest first."""
    query = (
        select(EquipmentCombo, Truck.truck_name, Trailer.trailer_name)
        .join(Truck, Truck.id == EquipmentCombo.truck_id)
        .join(Trailer, Trailer.id == EquipmentCombo.trailer_id)
        .where(EquipmentCombo.company_id == ctx.company_id)
    )
    if not include_inactive:
        query = query.where(EquipmentCombo.active.is_(True))
    query = query.order_by(EquipmentCombo.id.desc())

    result = await db.execute(query)
    return [
        ComboRecord(combo=combo, truck_name=truck_name, trailer_name=trailer_name)
        for combo, truck_name, trailer_name in result.all()
    ]
