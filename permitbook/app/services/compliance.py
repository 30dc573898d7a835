"""
Driver compliance profile service.

A profile save replaces profile fields, license, medical card, TWIC and
the port ID list wholesale (last write wins). Terminal access is not part
of the save: grants are added and removed one terminal at a time.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.context import RequestContext
from permitbook.app.core.exceptions import ValidationError, ResourceNotFoundError
from permitbook.app.core.reliability import storage_call
from permitbook.app.models.membership import Membership
from permitbook.app.models.driver_profile import DriverProfile, DriverLicense, MedicalCard, TwicCard, PortId
from permitbook.app.models.terminal import Terminal, TerminalAccess
from permitbook.app.schemas.compliance import ProfileSave
from permitbook.app.services.audit import record_event, AuditAction
from permitbook.app.services import expiry
from permitbook.app.services.expiry import ExpiryStatus, classify, add_days

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("display_name", "hire_date", "division", "region", "local_area", "employee_number")


@dataclass
class TerminalAccessView:
    terminal_id: int
    terminal_name: str
    city: Optional[str]
    state: Optional[str]
    carded_on: date
    renewal_days: int
    expires_on: date
    status: ExpiryStatus


@dataclass
class ProfileSnapshot:
    driver_id: int
    company_id: int
    profile: Optional[DriverProfile] = None
    license: Optional[DriverLicense] = None
    medical: Optional[MedicalCard] = None
    twic: Optional[TwicCard] = None
    port_ids: List[PortId] = field(default_factory=list)
    terminals: List[TerminalAccessView] = field(default_factory=list)

    @property
    def hazmat_linked_to_license(self) -> bool:
        return bool(self.profile and self.profile.hazmat_linked_to_license)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _require_member(db: AsyncSession, ctx: RequestContext, driver_id: int) -> None:
    """Drivers outside the caller's company are reported as not found."""
    result = await db.execute(
        select(Membership.id).where(
            Membership.user_id == driver_id,
            Membership.company_id == ctx.company_id
        )
    )
    if result.scalar_one_or_none() is None:
        raise ResourceNotFoundError("Driver", driver_id)


async def _get_profile(db: AsyncSession, ctx: RequestContext, driver_id: int) -> Optional[DriverProfile]:
    result = await db.execute(
        select(DriverProfile).where(
            DriverProfile.driver_id == driver_id,
            DriverProfile.company_id == ctx.company_id
        )
    )
    return result.scalar_one_or_none()


async def _one(db: AsyncSession, model, profile_id: int):
    result = await db.execute(select(model).where(model.profile_id == profile_id))
    return result.scalar_one_or_none()


async def _terminal_views(db: AsyncSession, ctx: RequestContext, driver_id: int,
                          as_of: Optional[date] = None) -> List[TerminalAccessView]:
    result = await db.execute(
        select(TerminalAccess, Terminal)
        .join(Terminal, Terminal.id == TerminalAccess.terminal_id)
        .where(
            TerminalAccess.driver_id == driver_id,
            TerminalAccess.company_id == ctx.company_id
        )
        .order_by(TerminalAccess.expires_on, Terminal.terminal_name)
    )
    return [_view(grant, terminal, as_of) for grant, terminal in result.all()]


def _view(grant: TerminalAccess, terminal: Terminal, as_of: Optional[date] = None) -> TerminalAccessView:
    return TerminalAccessView(
        terminal_id=terminal.id,
        terminal_name=terminal.terminal_name,
        city=terminal.city,
        state=terminal.state,
        carded_on=grant.carded_on,
        renewal_days=terminal.renewal_days,
        expires_on=grant.expires_on,
        status=classify(grant.expires_on, as_of),
    )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@storage_call()
async def load_profile(db: AsyncSession, ctx: RequestContext, driver_id: int) -> ProfileSnapshot:
    """
    Full compliance snapshot of a driver in the caller's company.

    A driver who has never saved a profile gets an empty snapshot (terminal
    grants are still reported).
    """
    ctx.require_self_or_admin(driver_id, "view this driver's profile")
    await _require_member(db, ctx, driver_id)

    snapshot = ProfileSnapshot(driver_id=driver_id, company_id=ctx.company_id)
    snapshot.terminals = await _terminal_views(db, ctx, driver_id)

    profile = await _get_profile(db, ctx, driver_id)
    if profile is None:
        return snapshot

    snapshot.profile = profile
    snapshot.license = await _one(db, DriverLicense, profile.id)
    snapshot.medical = await _one(db, MedicalCard, profile.id)
    snapshot.twic = await _one(db, TwicCard, profile.id)
    snapshot.port_ids = list((await db.execute(
        select(PortId).where(PortId.profile_id == profile.id).order_by(PortId.id)
    )).scalars().all())
    return snapshot


@storage_call()
async def save_profile(db: AsyncSession, ctx: RequestContext, driver_id: int, payload: ProfileSave) -> ProfileSnapshot:
    """
    Replace a driver's profile, license, medical card, TWIC and port IDs.

    Sections missing from the payload are cleared. A medical card attached
    to the license takes a copy of the license dates. Terminal access is
    left untouched.

    Raises:
        ValidationError: Medical card attached to a license that is not on file
        ResourceNotFoundError: Driver is not a member of the company
        AuthorizationError: A driver saving someone else's profile
    """
    ctx.require_self_or_admin(driver_id, "edit this driver's profile")
    await _require_member(db, ctx, driver_id)

    if payload.medical and payload.medical.attached_to_license and payload.license is None:
        raise ValidationError("Medical card is attached to a license, but no license is on file.", field="medical")

    profile = await _get_profile(db, ctx, driver_id)
    if profile is None:
        profile = DriverProfile(driver_id=driver_id, company_id=ctx.company_id)
        db.add(profile)

    for name in PROFILE_FIELDS:
        value = getattr(payload, name)
        setattr(profile, name, _clean(value) if isinstance(value, str) else value)
    profile.hazmat_linked_to_license = payload.hazmat_linked_to_license
    await db.flush()

    # Children are replaced with immediate statements so the unique
    # profile_id index never sees the old and new row together.
    for model in (DriverLicense, MedicalCard, TwicCard, PortId):
        await db.execute(delete(model).where(model.profile_id == profile.id))

    if payload.license is not None:
        db.add(DriverLicense(profile_id=profile.id, **payload.license.model_dump()))

    if payload.medical is not None:
        medical = payload.medical.model_dump()
        if payload.medical.attached_to_license:
            medical["issue_date"] = payload.license.issue_date
            medical["expiration_date"] = payload.license.expiration_date
        db.add(MedicalCard(profile_id=profile.id, **medical))

    if payload.twic is not None:
        db.add(TwicCard(profile_id=profile.id, **payload.twic.model_dump()))

    for port in payload.port_ids:
        name = _clean(port.port_name)
        if name:
            db.add(PortId(profile_id=profile.id, port_name=name, expiration_date=port.expiration_date))

    record_event(db, ctx, AuditAction.DRIVER_PROFILE_SAVED, "driver", driver_id, {
        "license": payload.license is not None,
        "medical": payload.medical is not None,
        "twic": payload.twic is not None,
        "port_ids": len(payload.port_ids),
    })
    await db.commit()
    logger.info("Profile saved for driver %s in company %s", driver_id, ctx.company_id)

    await db.refresh(profile)
    return await load_profile(db, ctx, driver_id)


# ---------------------------------------------------------------------------
# Terminal access
# ---------------------------------------------------------------------------

@storage_call()
async def list_terminal_access(db: AsyncSession, ctx: RequestContext, driver_id: int) -> List[TerminalAccessView]:
    ctx.require_self_or_admin(driver_id, "view this driver's terminals")
    await _require_member(db, ctx, driver_id)
    return await _terminal_views(db, ctx, driver_id)


@storage_call()
async def grant_terminal_access(
    db: AsyncSession,
    ctx: RequestContext,
    driver_id: int,
    terminal_id: int,
    carded_on: Optional[date] = None
) -> TerminalAccessView:
    """
    Grant a driver access to a terminal.

    expires_on = carded_on + terminal.renewal_days. A driver holds at most
    one grant per terminal: an unexpired grant is rejected, an expired one
    is re-carded in place.
    """
    ctx.require_self_or_admin(driver_id, "change this driver's terminal access")
    await _require_member(db, ctx, driver_id)

    terminal = (await db.execute(select(Terminal).where(Terminal.id == terminal_id))).scalar_one_or_none()
    if terminal is None:
        raise ResourceNotFoundError("Terminal", terminal_id)
    if not terminal.active:
        raise ValidationError(f"Terminal {terminal.terminal_name} is not active.", field="terminal_id")

    carded_on = carded_on or expiry.today()
    expires_on = add_days(carded_on, terminal.renewal_days)

    grant = (await db.execute(
        select(TerminalAccess).where(
            TerminalAccess.driver_id == driver_id,
            TerminalAccess.company_id == ctx.company_id,
            TerminalAccess.terminal_id == terminal_id
        ).with_for_update()
    )).scalar_one_or_none()

    if grant is not None:
        if not classify(grant.expires_on).is_expired:
            raise ValidationError(
                f"Driver already has access to {terminal.terminal_name}.",
                field="terminal_id",
                details={"expires_on": grant.expires_on.isoformat()}
            )
        grant.carded_on = carded_on
        grant.expires_on = expires_on
    else:
        grant = TerminalAccess(
            driver_id=driver_id,
            company_id=ctx.company_id,
            terminal_id=terminal_id,
            carded_on=carded_on,
            expires_on=expires_on,
        )
        db.add(grant)

    record_event(db, ctx, AuditAction.TERMINAL_ACCESS_GRANTED, "driver", driver_id, {
        "terminal_id": terminal_id,
        "carded_on": carded_on.isoformat(),
        "expires_on": expires_on.isoformat(),
    })
    await db.commit()
    return _view(grant, terminal)


@storage_call()
async def revoke_terminal_access(db: AsyncSession, ctx: RequestContext, driver_id: int, terminal_id: int) -> None:
    """Remove a driver's grant for one terminal."""
    ctx.require_self_or_admin(driver_id, "change this driver's terminal access")

    grant = (await db.execute(
        select(TerminalAccess).where(
            TerminalAccess.driver_id == driver_id,
            TerminalAccess.company_id == ctx.company_id,
            TerminalAccess.terminal_id == terminal_id
        )
    )).scalar_one_or_none()
    if grant is None:
        raise ResourceNotFoundError("Terminal access", terminal_id)

    await db.delete(grant)
    record_event(db, ctx, AuditAction.TERMINAL_ACCESS_REVOKED, "driver", driver_id, {"terminal_id": terminal_id})
    await db.commit()
