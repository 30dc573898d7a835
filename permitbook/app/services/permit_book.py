"""
Permit book.

Flattens the fixed permit fields of every truck and trailer (plus each
truck's other permits) into classified entries. Expiration and
enforcement dates are classified independently; an entry's tier is the
more urgent of the two.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, List, Iterable, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.context import RequestContext
from permitbook.app.core.reliability import storage_call
from permitbook.app.models.enums import ExpiryTier, EquipmentType
from permitbook.app.models.truck import Truck, TruckOtherPermit
from permitbook.app.models.trailer import Trailer
from permitbook.app.services import expiry
from permitbook.app.services.expiry import ExpiryStatus, classify, worst_tier

# (permit_key, label, expiration attribute, enforcement attribute)
TRUCK_PERMITS: Tuple[Tuple[str, str, str, Optional[str]], ...] = (
    ("registration", "Registration", "reg_expiration_date", "reg_enforcement_date"),
    ("annual_inspection", "Annual Inspection", "inspection_expiration_date", None),
    ("ifta", "IFTA", "ifta_expiration_date", "ifta_enforcement_date"),
    ("phmsa", "PHMSA", "phmsa_expiration_date", None),
    ("alliance_hazmat", "Alliance HazMat", "alliance_expiration_date", None),
    ("fleet_insurance", "Fleet Insurance", "fleet_ins_expiration_date", None),
    ("hazmat_license", "HazMat Transport License", "hazmat_lic_expiration_date", None),
    ("inner_bridge", "Inner Bridge", "inner_bridge_expiration_date", None),
)

TRAILER_PERMITS: Tuple[Tuple[str, str, str, Optional[str]], ...] = (
    ("registration", "Registration", "trailer_reg_expiration_date", "trailer_reg_enforcement_date"),
    ("annual_inspection", "Annual Inspection", "trailer_inspection_expiration_date", None),
    ("tank_v", "V - External Visual", "tank_v_expiration_date", None),
    ("tank_k", "K - Leakage Test", "tank_k_expiration_date", None),
    ("tank_l", "L - Lining Inspection", "tank_l_expiration_date", None),
    ("tank_t", "T - Thickness Test", "tank_t_expiration_date", None),
    ("tank_i", "I - Internal Visual", "tank_i_expiration_date", None),
    ("tank_p", "P - Pressure Test", "tank_p_expiration_date", None),
    ("tank_uc", "UC - Upper Coupler", "tank_uc_expiration_date", None),
)


@dataclass
class PermitEntry:
    equipment_type: EquipmentType
    equipment_id: int
    equipment_name: str
    permit_key: str
    label: str
    expiration_date: Optional[date]
    enforcement_date: Optional[date]
    expiration: ExpiryStatus
    enforcement: Optional[ExpiryStatus]
    tier: ExpiryTier

    def sort_key(self):
        days = self.expiration.days_until
        # undated permits go last within their tier
        return (self.tier.severity(), days is None, days if days is not None else 0,
                self.equipment_name, self.label)


def _entry(equipment_type, equipment_id, equipment_name, key, label,
           expiration_date, enforcement_date, as_of) -> PermitEntry:
    expiration = classify(expiration_date, as_of)
    enforcement = classify(enforcement_date, as_of) if enforcement_date is not None else None
    return PermitEntry(
        equipment_type=equipment_type,
        equipment_id=equipment_id,
        equipment_name=equipment_name,
        permit_key=key,
        label=label,
        expiration_date=expiration_date,
        enforcement_date=enforcement_date,
        expiration=expiration,
        enforcement=enforcement,
        tier=worst_tier(expiration, enforcement),
    )


def truck_permits(truck: Truck, other_permits: Iterable[TruckOtherPermit] = (),
                  as_of: Optional[date] = None) -> List[PermitEntry]:
    """Classified permit lines of one truck, fixed permits first."""
    entries = [
        _entry(EquipmentType.TRUCK, truck.id, truck.truck_name, key, label,
               getattr(truck, exp_attr), getattr(truck, enf_attr) if enf_attr else None, as_of)
        for key, label, exp_attr, enf_attr in TRUCK_PERMITS
    ]
    for permit in other_permits:
        entries.append(_entry(EquipmentType.TRUCK, truck.id, truck.truck_name,
                              f"other:{permit.id}", permit.label, permit.expiration_date, None, as_of))
    return entries


def trailer_permits(trailer: Trailer, as_of: Optional[date] = None) -> List[PermitEntry]:
    """Classified permit lines of one trailer."""
    return [
        _entry(EquipmentType.TRAILER, trailer.id, trailer.trailer_name, key, label,
               getattr(trailer, exp_attr), getattr(trailer, enf_attr) if enf_attr else None, as_of)
        for key, label, exp_attr, enf_attr in TRAILER_PERMITS
    ]


@storage_call()
async def permit_book(
    db: AsyncSession,
    ctx: RequestContext,
    tier: Optional[ExpiryTier] = None,
    as_of: Optional[date] = None
) -> List[PermitEntry]:
    """
    Company-wide permit book, most urgent first.

    Args:
        db: Database session
        ctx: Caller context
        tier: Only return entries of this tier
        as_of: Reference day; defaults to today

    Returns:
        Entries sorted by tier severity, then by days left
    """
    as_of = as_of or expiry.today()

    trucks = (await db.execute(
        select(Truck).where(Truck.company_id == ctx.company_id)
    )).scalars().all()
    trailers = (await db.execute(
        select(Trailer).where(Trailer.company_id == ctx.company_id)
    )).scalars().all()

    others = {}
    if trucks:
        permit_rows = (await db.execute(
            select(TruckOtherPermit)
            .where(TruckOtherPermit.truck_id.in_([t.id for t in trucks]))
            .order_by(TruckOtherPermit.id)
        )).scalars().all()
        for permit in permit_rows:
            others.setdefault(permit.truck_id, []).append(permit)

    entries: List[PermitEntry] = []
    for truck in trucks:
        entries.extend(truck_permits(truck, others.get(truck.id, []), as_of))
    for trailer in trailers:
        entries.extend(trailer_permits(trailer, as_of))

    if tier is not None:
        entries = [e for e in entries if e.tier == tier]
    entries.sort(key=PermitEntry.sort_key)
    return entries
