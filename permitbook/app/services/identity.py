"""
Driver identity continuity.

When the invite workflow recreates a driver's account the driver gets a
new user id. Everything the compliance core keys by driver id moves to
the new id in one transaction, or nothing moves at all.
"""

import logging
from dataclasses import dataclass, asdict

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.context import RequestContext
from permitbook.app.core.exceptions import ValidationError, ResourceNotFoundError
from permitbook.app.core.reliability import storage_call
from permitbook.app.models.membership import Membership
from permitbook.app.models.driver_profile import DriverProfile
from permitbook.app.models.terminal import TerminalAccess
from permitbook.app.models.load_record import LoadRecord
from permitbook.app.models.equipment_combo import EquipmentCombo
from permitbook.app.services.audit import record_event, AuditAction

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    old_driver_id: int
    new_driver_id: int
    profiles_moved: int = 0
    terminal_grants_moved: int = 0
    terminal_grants_merged: int = 0
    load_records_moved: int = 0
    combo_claims_moved: int = 0
    combo_claims_cleared: int = 0
    memberships_moved: int = 0

    @property
    def total(self) -> int:
        return (self.profiles_moved + self.terminal_grants_moved + self.terminal_grants_merged
                + self.load_records_moved + self.combo_claims_moved + self.combo_claims_cleared
                + self.memberships_moved)


async def _membership(db: AsyncSession, ctx: RequestContext, user_id: int):
    result = await db.execute(
        select(Membership).where(Membership.user_id == user_id, Membership.company_id == ctx.company_id)
    )
    return result.scalar_one_or_none()


async def _profile(db: AsyncSession, ctx: RequestContext, driver_id: int):
    result = await db.execute(
        select(DriverProfile).where(
            DriverProfile.driver_id == driver_id,
            DriverProfile.company_id == ctx.company_id
        )
    )
    return result.scalar_one_or_none()


async def _move_terminal_grants(db: AsyncSession, ctx: RequestContext, result: MigrationResult) -> None:
    """Re-key grants; when both ids hold the same terminal keep the later carding."""
    rows = (await db.execute(
        select(TerminalAccess).where(
            TerminalAccess.company_id == ctx.company_id,
            TerminalAccess.driver_id.in_([result.old_driver_id, result.new_driver_id])
        )
    )).scalars().all()

    held = {g.terminal_id: g for g in rows if g.driver_id == result.new_driver_id}
    for grant in rows:
        if grant.driver_id != result.old_driver_id:
            continue
        existing = held.get(grant.terminal_id)
        if existing is None:
            grant.driver_id = result.new_driver_id
            result.terminal_grants_moved += 1
            continue
        if grant.carded_on > existing.carded_on:
            existing.carded_on = grant.carded_on
            existing.expires_on = grant.expires_on
        await db.delete(grant)
        result.terminal_grants_merged += 1
    await db.flush()


@storage_call()
async def migrate_driver_identity(
    db: AsyncSession,
    ctx: RequestContext,
    old_driver_id: int,
    new_driver_id: int
) -> MigrationResult:
    """
    Move a driver's compliance rows from old_driver_id to new_driver_id.

    Moves, within the caller's company: the driver profile (license,
    medical, TWIC and port IDs follow it by profile id), terminal grants,
    load records, combo claims and the membership. When the new id already
    holds a combo claim, the old id's claims are cleared instead of moved.

    Idempotent: running it again after success moves nothing and reports
    zero counts.

    Raises:
        ValidationError: Same ids, or both ids already have a profile
        ResourceNotFoundError: Neither id belongs to the company
        AuthorizationError: Caller is not an admin
    """
    ctx.require_admin("migrate driver identities")
    if old_driver_id == new_driver_id:
        raise ValidationError("Old and new driver ids are the same.", field="new_driver_id")

    old_membership = await _membership(db, ctx, old_driver_id)
    new_membership = await _membership(db, ctx, new_driver_id)
    if old_membership is None and new_membership is None:
        raise ResourceNotFoundError("Driver", old_driver_id)

    result = MigrationResult(old_driver_id=old_driver_id, new_driver_id=new_driver_id)

    old_profile = await _profile(db, ctx, old_driver_id)
    new_profile = await _profile(db, ctx, new_driver_id)
    if old_profile is not None and new_profile is not None:
        raise ValidationError(
            "The new account already has a compliance profile; nothing was migrated.",
            field="new_driver_id",
            details={"old_driver_id": old_driver_id, "new_driver_id": new_driver_id}
        )

    if old_profile is not None:
        old_profile.driver_id = new_driver_id
        result.profiles_moved = 1

    await _move_terminal_grants(db, ctx, result)

    loads = await db.execute(
        update(LoadRecord)
        .where(LoadRecord.company_id == ctx.company_id, LoadRecord.driver_id == old_driver_id)
        .values(driver_id=new_driver_id)
    )
    result.load_records_moved = loads.rowcount or 0

    # a driver runs one unit at a time: a claim already held by the new id wins
    new_claim = (await db.execute(
        select(EquipmentCombo.id).where(
            EquipmentCombo.company_id == ctx.company_id,
            EquipmentCombo.claimed_by == new_driver_id
        ).limit(1)
    )).scalar_one_or_none()
    old_claims = update(EquipmentCombo).where(
        EquipmentCombo.company_id == ctx.company_id,
        EquipmentCombo.claimed_by == old_driver_id
    )
    if new_claim is None:
        claims = await db.execute(old_claims.values(claimed_by=new_driver_id))
        result.combo_claims_moved = claims.rowcount or 0
    else:
        claims = await db.execute(old_claims.values(claimed_by=None, claimed_at=None))
        result.combo_claims_cleared = claims.rowcount or 0

    if old_membership is not None:
        if new_membership is None:
            old_membership.user_id = new_driver_id
        else:
            await db.delete(old_membership)
        result.memberships_moved = 1

    if result.total:
        record_event(db, ctx, AuditAction.DRIVER_IDENTITY_MIGRATED, "driver", new_driver_id, asdict(result))
    await db.commit()

    logger.info("Driver identity %s -> %s migrated in company %s: %s",
                old_driver_id, new_driver_id, ctx.company_id, asdict(result))
    return result
