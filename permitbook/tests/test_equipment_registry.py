"""
Tests for the equipment registry: trucks, trailers, lifecycle and tenancy.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import select, func

from permitbook.app.core.exceptions import ValidationError, ResourceNotFoundError, AuthorizationError
from permitbook.app.models.enums import ExpiryTier
from permitbook.app.models.equipment_combo import EquipmentCombo
from permitbook.app.models.truck import TruckOtherPermit
from permitbook.app.models.trailer import TrailerCompartment
from permitbook.app.models.audit_log import AuditLog
from permitbook.app.schemas.equipment import TruckPayload, TrailerPayload, CompartmentPayload, OtherPermitPayload
from permitbook.app.services import equipment as registry
from permitbook.app.services import coupling
from permitbook.app.services.permit_book import permit_book


@pytest.mark.asyncio
async def test_create_truck_with_other_permits(db_session, admin_ctx):
    payload = TruckPayload(
        truck_name="  T-101 ",
        vin_number="1XKWD49X",
        other_permits=[OtherPermitPayload(label="Oregon Permit", expiration_date=date(2026, 9, 1))],
    )
    record = await registry.create_truck(db_session, admin_ctx, payload)

    assert record.truck.truck_name == "T-101"
    assert record.truck.company_id == admin_ctx.company_id
    assert record.truck.active is True
    assert [p.label for p in record.other_permits] == ["Oregon Permit"]

    audit = (await db_session.execute(select(AuditLog))).scalars().all()
    assert [a.action for a in audit] == ["EQUIPMENT_CREATED"]


@pytest.mark.asyncio
async def test_blank_truck_name_rejected(db_session, admin_ctx):
    with pytest.raises(ValidationError) as exc:
        await registry.create_truck(db_session, admin_ctx, TruckPayload(truck_name="   "))
    assert exc.value.message == "Truck name is required."


@pytest.mark.asyncio
async def test_blank_other_permit_label_rejected(db_session, admin_ctx):
    payload = TruckPayload(truck_name="T1", other_permits=[OtherPermitPayload(label=" ")])
    with pytest.raises(ValidationError):
        await registry.create_truck(db_session, admin_ctx, payload)


@pytest.mark.asyncio
async def test_drivers_cannot_add_equipment(db_session, driver_ctx):
    with pytest.raises(AuthorizationError):
        await registry.create_truck(db_session, driver_ctx, TruckPayload(truck_name="T1"))


@pytest.mark.asyncio
async def test_update_truck_replaces_other_permits(db_session, admin_ctx):
    created = await registry.create_truck(db_session, admin_ctx, TruckPayload(
        truck_name="T1",
        other_permits=[OtherPermitPayload(label="A"), OtherPermitPayload(label="B")],
    ))
    truck_id = created.truck.id

    updated = await registry.update_truck(db_session, admin_ctx, truck_id, TruckPayload(
        truck_name="T1",
        region="Inland",
        other_permits=[OtherPermitPayload(label="C")],
    ))

    assert updated.truck.region == "Inland"
    labels = (await db_session.execute(
        select(TruckOtherPermit.label).where(TruckOtherPermit.truck_id == truck_id)
    )).scalars().all()
    assert labels == ["C"]


@pytest.mark.asyncio
async def test_trailer_compartments_renumbered_and_totalled(db_session, admin_ctx):
    payload = TrailerPayload(
        trailer_name="3151",
        compartments=[
            CompartmentPayload(max_gallons=2000, position=2),
            CompartmentPayload(max_gallons="1500", position=0),
            CompartmentPayload(max_gallons=1000, position=1),
        ],
    )
    record = await registry.create_trailer(db_session, admin_ctx, payload)

    assert [c.comp_number for c in record.compartments] == [1, 2, 3]
    assert [c.max_gallons for c in record.compartments] == [1500, 1000, 2000]
    assert record.total_capacity == 4500
    assert record.trailer.cg_max == 1.0


@pytest.mark.asyncio
async def test_trailer_save_rejected_when_any_compartment_empty(db_session, admin_ctx):
    payload = TrailerPayload(
        trailer_name="3151",
        compartments=[CompartmentPayload(max_gallons=2000), CompartmentPayload(max_gallons="n/a")],
    )
    with pytest.raises(ValidationError) as exc:
        await registry.create_trailer(db_session, admin_ctx, payload)
    assert exc.value.message == "All compartments need max gallons > 0"

    count = (await db_session.execute(select(func.count(TrailerCompartment.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_trailer_without_compartments_is_valid(db_session, admin_ctx):
    record = await registry.create_trailer(db_session, admin_ctx, TrailerPayload(trailer_name="Empty"))
    assert record.compartments == []


@pytest.mark.asyncio
async def test_cg_max_must_be_positive(db_session, admin_ctx):
    with pytest.raises(ValidationError):
        await registry.create_trailer(db_session, admin_ctx, TrailerPayload(trailer_name="R1", cg_max=0))


@pytest.mark.asyncio
async def test_update_trailer_replaces_compartments(db_session, admin_ctx, make_trailer):
    trailer_id = await make_trailer("R1", compartments=[CompartmentPayload(max_gallons=1000)] * 4)

    record = await registry.update_trailer(db_session, admin_ctx, trailer_id, TrailerPayload(
        trailer_name="R1",
        compartments=[CompartmentPayload(max_gallons=3000), CompartmentPayload(max_gallons=2500)],
    ))

    assert [c.comp_number for c in record.compartments] == [1, 2]
    stored = await registry.get_trailer(db_session, admin_ctx, trailer_id)
    assert stored.total_capacity == 5500


@pytest.mark.asyncio
async def test_delete_coupled_equipment_is_rejected(db_session, admin_ctx, make_truck, make_trailer):
    truck_id = await make_truck("T1")
    trailer_id = await make_trailer("R1")
    await coupling.couple(db_session, admin_ctx, truck_id, trailer_id, tare_lbs=34000)

    with pytest.raises(ValidationError):
        await registry.delete_truck(db_session, admin_ctx, truck_id)
    with pytest.raises(ValidationError):
        await registry.delete_trailer(db_session, admin_ctx, trailer_id)
    with pytest.raises(ValidationError):
        await registry.set_active(db_session, admin_ctx, "truck", truck_id, False)


@pytest.mark.asyncio
async def test_delete_after_decouple_removes_history(db_session, admin_ctx, make_truck, make_trailer):
    truck_id = await make_truck("T1", other_permits=[OtherPermitPayload(label="State")])
    trailer_id = await make_trailer("R1", compartments=[CompartmentPayload(max_gallons=1000)])
    combo = await coupling.couple(db_session, admin_ctx, truck_id, trailer_id, tare_lbs=34000)
    await coupling.decouple(db_session, admin_ctx, combo.combo.id)

    await registry.delete_truck(db_session, admin_ctx, truck_id)
    await registry.delete_trailer(db_session, admin_ctx, trailer_id)

    assert (await db_session.execute(select(func.count(EquipmentCombo.id)))).scalar() == 0
    assert (await db_session.execute(select(func.count(TruckOtherPermit.id)))).scalar() == 0
    assert (await db_session.execute(select(func.count(TrailerCompartment.id)))).scalar() == 0
    with pytest.raises(ResourceNotFoundError):
        await registry.get_truck(db_session, admin_ctx, truck_id)


@pytest.mark.asyncio
async def test_set_active_round_trip(db_session, admin_ctx, make_truck):
    truck_id = await make_truck("T1")

    truck = await registry.set_active(db_session, admin_ctx, "truck", truck_id, False)
    assert truck.active is False
    truck = await registry.set_active(db_session, admin_ctx, "truck", truck_id, True)
    assert truck.active is True


@pytest.mark.asyncio
async def test_other_company_equipment_is_not_found(db_session, admin_ctx, foreign_admin_ctx, make_truck):
    truck_id = await make_truck("T1")

    with pytest.raises(ResourceNotFoundError):
        await registry.get_truck(db_session, foreign_admin_ctx, truck_id)
    with pytest.raises(ResourceNotFoundError):
        await registry.delete_truck(db_session, foreign_admin_ctx, truck_id)
    assert await registry.list_trucks(db_session, foreign_admin_ctx) == []


@pytest.mark.asyncio
async def test_roster_annotations_and_availability(db_session, admin_ctx, driver_ctx, make_truck, make_trailer):
    t1 = await make_truck("T1")
    t2 = await make_truck("T2")
    t3 = await make_truck("T3", active=False)
    r1 = await make_trailer("R1")
    r2 = await make_trailer("R2")

    combo = await coupling.couple(db_session, driver_ctx, t1, r1, tare_lbs=34000, claim=True)

    trucks = {r.truck.id: r for r in await registry.list_trucks(db_session, admin_ctx)}
    assert trucks[t1].combo.id == combo.combo.id
    assert trucks[t1].combo.claimed_by == driver_ctx.user_id
    assert trucks[t2].combo is None

    available_trucks, available_trailers = await registry.list_available_equipment(db_session, admin_ctx)
    assert [r.truck.id for r in available_trucks] == [t2]
    assert [r.trailer.id for r in available_trailers] == [r2]
    assert t3 not in [r.truck.id for r in available_trucks]


@pytest.mark.asyncio
async def test_permit_book_sorted_most_urgent_first(db_session, admin_ctx, make_truck, make_trailer, frozen_today):
    await make_truck(
        "T1",
        reg_expiration_date=frozen_today + timedelta(days=200),
        reg_enforcement_date=frozen_today - timedelta(days=2),
        ifta_expiration_date=frozen_today + timedelta(days=10),
    )
    await make_trailer("R1", tank_v_expiration_date=frozen_today + timedelta(days=45))

    entries = await permit_book(db_session, admin_ctx)

    dated = [e for e in entries if e.tier != ExpiryTier.UNKNOWN]
    assert [(e.equipment_name, e.permit_key, e.tier) for e in dated] == [
        ("T1", "registration", ExpiryTier.EXPIRED),
        ("T1", "ifta", ExpiryTier.CRITICAL),
        ("R1", "tank_v", ExpiryTier.WARNING),
    ]
    assert entries[-1].tier == ExpiryTier.UNKNOWN

    registration = dated[0]
    assert registration.expiration.tier == ExpiryTier.HEALTHY
    assert registration.enforcement.label == "Expired 2d ago"

    critical = await permit_book(db_session, admin_ctx, tier=ExpiryTier.CRITICAL)
    assert [e.permit_key for e in critical] == ["ifta"]
