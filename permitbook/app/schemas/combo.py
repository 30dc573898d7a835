"""
Equipment combo Pydantic schemas.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class CoupleRequest(BaseModel):
    """Schema for coupling a truck to a trailer."""
    truck_id: int
    trailer_id: int
    # Positivity is enforced by the coupling manager so the error is a domain ValidationError
    tare_lbs: Optional[float] = Field(None, description="Tare weight in lbs, required and > 0")
    target_weight: Optional[float] = Field(None, description="Target gross in lbs, defaults to 80,000")
    combo_name: Optional[str] = Field(None, max_length=255)
    claim: bool = Field(False, description="Claim the new combo for the caller")


class ComboUpdate(BaseModel):
    """Schema for editing a combo. Only fields that are sent are applied."""
    truck_id: Optional[int] = None
    trailer_id: Optional[int] = None
    tare_lbs: Optional[float] = None
    target_weight: Optional[float] = None
    combo_name: Optional[str] = Field(None, max_length=255)


class ComboResponse(BaseModel):
    id: int
    company_id: int
    combo_name: Optional[str]
    truck_id: int
    trailer_id: int
    truck_name: Optional[str] = None
    trailer_name: Optional[str] = None
    tare_lbs: float
    target_weight: Optional[float]
    active: bool
    claimed_by: Optional[int]
    claimed_at: Optional[datetime]
    created_at: Optional[datetime] = None
    decoupled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_record(cls, record) -> "ComboResponse":
        return cls.model_validate(record.combo).model_copy(update={
            "truck_name": record.truck_name,
            "trailer_name": record.trailer_name,
        })


class ComboListResponse(BaseModel):
    combos: List[ComboResponse]
    total: int


class DecoupleResponse(BaseModel):
    combo_id: int
    active: bool
    changed: bool = Field(..., description="False when the combo was already decoupled or does not exist")
