"""
Tests for the driver compliance profile and terminal access grants.
"""

from datetime import date, timedelta

import pytest

from permitbook.app.core.exceptions import ValidationError, ResourceNotFoundError, AuthorizationError
from permitbook.app.models.enums import ExpiryTier
from permitbook.app.schemas.compliance import (
    ProfileSave, LicenseSchema, MedicalCardSchema, TwicCardSchema, PortIdSchema
)
from permitbook.app.services import compliance


def _full_profile(**overrides) -> ProfileSave:
    data = dict(
        display_name="Dana Ortiz",
        hire_date=date(2021, 6, 1),
        division="Fuel",
        region="Inland",
        employee_number="E-2041",
        hazmat_linked_to_license=True,
        license=LicenseSchema(
            license_class="A",
            license_number="D1234567",
            issue_date=date(2022, 2, 1),
            expiration_date=date(2027, 2, 1),
            state_code="CA",
            endorsements=["H", "N", "X"],
            restrictions=["L"],
        ),
        medical=MedicalCardSchema(examiner_name="Dr. Reyes", issue_date=date(2025, 5, 1),
                                  expiration_date=date(2027, 5, 1)),
        twic=TwicCardSchema(card_number="TW-88", expiration_date=date(2028, 1, 31)),
        port_ids=[PortIdSchema(port_name="Port of LA", expiration_date=date(2026, 8, 1)),
                  PortIdSchema(port_name="   ")],
    )
    data.update(overrides)
    return ProfileSave(**data)


@pytest.mark.asyncio
async def test_save_then_load_round_trip(db_session, driver_ctx):
    await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, _full_profile())

    snapshot = await compliance.load_profile(db_session, driver_ctx, driver_ctx.user_id)

    assert snapshot.profile.display_name == "Dana Ortiz"
    assert snapshot.profile.employee_number == "E-2041"
    assert snapshot.hazmat_linked_to_license is True
    assert snapshot.license.license_number == "D1234567"
    assert sorted(snapshot.license.endorsements) == ["H", "N", "X"]
    assert snapshot.license.restrictions == ["L"]
    assert snapshot.medical.examiner_name == "Dr. Reyes"
    assert snapshot.medical.expiration_date == date(2027, 5, 1)
    assert snapshot.twic.card_number == "TW-88"
    assert [p.port_name for p in snapshot.port_ids] == ["Port of LA"]


@pytest.mark.asyncio
async def test_medical_attached_to_license_copies_dates(db_session, driver_ctx):
    payload = _full_profile(medical=MedicalCardSchema(attached_to_license=True, examiner_name="Dr. Reyes"))

    snapshot = await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, payload)

    assert snapshot.medical.attached_to_license is True
    assert snapshot.medical.issue_date == date(2022, 2, 1)
    assert snapshot.medical.expiration_date == date(2027, 2, 1)


@pytest.mark.asyncio
async def test_medical_attached_without_license_rejected(db_session, driver_ctx):
    payload = _full_profile(license=None, medical=MedicalCardSchema(attached_to_license=True))

    with pytest.raises(ValidationError):
        await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, payload)

    snapshot = await compliance.load_profile(db_session, driver_ctx, driver_ctx.user_id)
    assert snapshot.profile is None


@pytest.mark.asyncio
async def test_save_replaces_instead_of_merging(db_session, driver_ctx):
    await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, _full_profile())

    second = ProfileSave(
        display_name="Dana O.",
        license=LicenseSchema(license_class="B", expiration_date=date(2030, 1, 1)),
        port_ids=[PortIdSchema(port_name="Port of Long Beach")],
    )
    snapshot = await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, second)

    assert snapshot.profile.display_name == "Dana O."
    assert snapshot.profile.division is None
    assert snapshot.hazmat_linked_to_license is False
    assert snapshot.license.license_class == "B"
    assert snapshot.license.endorsements == []
    assert snapshot.medical is None
    assert snapshot.twic is None
    assert [p.port_name for p in snapshot.port_ids] == ["Port of Long Beach"]


@pytest.mark.asyncio
async def test_empty_profile_for_new_driver(db_session, driver_ctx):
    snapshot = await compliance.load_profile(db_session, driver_ctx, driver_ctx.user_id)
    assert snapshot.profile is None
    assert snapshot.license is None
    assert snapshot.port_ids == []
    assert snapshot.terminals == []


@pytest.mark.asyncio
async def test_profile_access_rules(db_session, admin_ctx, driver_ctx, other_driver_ctx, foreign_admin_ctx):
    with pytest.raises(AuthorizationError):
        await compliance.save_profile(db_session, other_driver_ctx, driver_ctx.user_id, _full_profile())

    snapshot = await compliance.save_profile(db_session, admin_ctx, driver_ctx.user_id, _full_profile())
    assert snapshot.driver_id == driver_ctx.user_id

    with pytest.raises(ResourceNotFoundError):
        await compliance.load_profile(db_session, foreign_admin_ctx, driver_ctx.user_id)
    with pytest.raises(ResourceNotFoundError):
        await compliance.load_profile(db_session, admin_ctx, 4242)


# ---------------------------------------------------------------------------
# Terminal access
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_grant_computes_expiry_from_cadence(db_session, driver_ctx, terminals, frozen_today):
    colton, carson, _ = terminals

    view = await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, carson,
                                                  carded_on=date(2026, 1, 10))
    assert view.expires_on == date(2026, 1, 10) + timedelta(days=180)
    assert view.terminal_name == "Carson"

    default = await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
    assert default.carded_on == frozen_today
    assert default.expires_on == frozen_today + timedelta(days=365)
    assert default.status.tier == ExpiryTier.HEALTHY


@pytest.mark.asyncio
async def test_duplicate_grant_rejected_but_expired_grant_recarded(db_session, driver_ctx, terminals, frozen_today):
    colton = terminals[0]
    await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton,
                                           carded_on=date(2025, 1, 1))
    views = await compliance.list_terminal_access(db_session, driver_ctx, driver_ctx.user_id)
    assert views[0].status.is_expired

    recarded = await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
    assert recarded.carded_on == frozen_today
    assert not recarded.status.is_expired

    with pytest.raises(ValidationError):
        await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
    assert len(await compliance.list_terminal_access(db_session, driver_ctx, driver_ctx.user_id)) == 1


@pytest.mark.asyncio
async def test_inactive_or_unknown_terminal(db_session, driver_ctx, terminals):
    retired = terminals[2]
    with pytest.raises(ValidationError):
        await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, retired)
    with pytest.raises(ResourceNotFoundError):
        await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, 999)


@pytest.mark.asyncio
async def test_revoke_and_save_leave_each_other_alone(db_session, driver_ctx, other_driver_ctx, terminals):
    colton, carson, _ = terminals
    await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
    await compliance.grant_terminal_access(db_session, driver_ctx, driver_ctx.user_id, carson)

    snapshot = await compliance.save_profile(db_session, driver_ctx, driver_ctx.user_id, _full_profile())
    assert {t.terminal_id for t in snapshot.terminals} == {colton, carson}

    with pytest.raises(AuthorizationError):
        await compliance.revoke_terminal_access(db_session, other_driver_ctx, driver_ctx.user_id, colton)

    await compliance.revoke_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
    snapshot = await compliance.load_profile(db_session, driver_ctx, driver_ctx.user_id)
    assert [t.terminal_id for t in snapshot.terminals] == [carson]

    with pytest.raises(ResourceNotFoundError):
        await compliance.revoke_terminal_access(db_session, driver_ctx, driver_ctx.user_id, colton)
