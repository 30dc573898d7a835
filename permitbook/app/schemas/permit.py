"""
Permit and expiry Pydantic schemas.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from permitbook.app.models.enums import ExpiryTier, EquipmentType


class ExpiryStatusResponse(BaseModel):
    """Classification of a single date."""
    days_until: Optional[int]
    tier: ExpiryTier
    label: str

    @classmethod
    def from_status(cls, status) -> Optional["ExpiryStatusResponse"]:
        if status is None:
            return None
        return cls(days_until=status.days_until, tier=status.tier, label=status.label)


class PermitResponse(BaseModel):
    """One permit line with both of its dates classified independently."""
    permit_key: str
    label: str
    expiration_date: Optional[date]
    enforcement_date: Optional[date] = None
    expiration: ExpiryStatusResponse
    enforcement: Optional[ExpiryStatusResponse] = None
    tier: ExpiryTier

    @classmethod
    def from_entry(cls, entry) -> "PermitResponse":
        return cls(
            permit_key=entry.permit_key,
            label=entry.label,
            expiration_date=entry.expiration_date,
            enforcement_date=entry.enforcement_date,
            expiration=ExpiryStatusResponse.from_status(entry.expiration),
            enforcement=ExpiryStatusResponse.from_status(entry.enforcement),
            tier=entry.tier,
        )


class PermitBookEntryResponse(PermitResponse):
    """Permit line in the company-wide permit book."""
    equipment_type: EquipmentType
    equipment_id: int
    equipment_name: str

    @classmethod
    def from_entry(cls, entry) -> "PermitBookEntryResponse":
        base = PermitResponse.from_entry(entry).model_dump()
        return cls(
            equipment_type=entry.equipment_type,
            equipment_id=entry.equipment_id,
            equipment_name=entry.equipment_name,
            **base,
        )


class PermitBookResponse(BaseModel):
    entries: list[PermitBookEntryResponse]
    total: int
    as_of: date
