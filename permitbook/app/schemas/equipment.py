"""
Truck and trailer Pydantic schemas.

Create and update share one payload: an update replaces every field,
the way the admin equipment form submits the whole record.
"""

from datetime import date, datetime
from typing import Optional, List, Union

from pydantic import BaseModel, Field

from permitbook.app.schemas.permit import PermitResponse


class OtherPermitPayload(BaseModel):
    label: str = Field(..., max_length=100, description="e.g. State Permit")
    expiration_date: Optional[date] = None


class TruckPayload(BaseModel):
    """Schema for creating or fully replacing a truck."""
    truck_name: str = Field(..., max_length=100, description="Unit number, e.g. T-101")
    vin_number: Optional[str] = Field(None, max_length=32)
    make: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)

    region: Optional[str] = Field(None, max_length=100)
    local_area: Optional[str] = Field(None, max_length=100)
    status_code: Optional[str] = Field(None, max_length=32, description="active, parked, maintenance, inactive")
    status_location: Optional[str] = Field(None, max_length=255)
    active: bool = True

    # Permit book
    reg_expiration_date: Optional[date] = None
    reg_enforcement_date: Optional[date] = None
    inspection_shop: Optional[str] = Field(None, max_length=255)
    inspection_issue_date: Optional[date] = None
    inspection_expiration_date: Optional[date] = None
    ifta_expiration_date: Optional[date] = None
    ifta_enforcement_date: Optional[date] = None
    phmsa_expiration_date: Optional[date] = None
    alliance_expiration_date: Optional[date] = None
    fleet_ins_expiration_date: Optional[date] = None
    hazmat_lic_expiration_date: Optional[date] = None
    inner_bridge_expiration_date: Optional[date] = None
    other_permits: List[OtherPermitPayload] = Field(default_factory=list)

    notes: Optional[str] = None


class CompartmentPayload(BaseModel):
    """Raw compartment input; unparseable gallons are coerced to 0 and then rejected."""
    comp_number: Optional[int] = None
    max_gallons: Union[float, str, None] = 0
    position: Optional[int] = None


class TrailerPayload(BaseModel):
    """Schema for creating or fully replacing a trailer."""
    trailer_name: str = Field(..., max_length=100, description="Unit number, e.g. 3151")
    vin_number: Optional[str] = Field(None, max_length=32)
    make: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)

    cg_max: Optional[float] = Field(None, description="Centre-of-gravity max, defaults to 1.0")
    last_load_config: Optional[str] = Field(None, max_length=255)

    region: Optional[str] = Field(None, max_length=100)
    local_area: Optional[str] = Field(None, max_length=100)
    status_code: Optional[str] = Field(None, max_length=32)
    status_location: Optional[str] = Field(None, max_length=255)
    active: bool = True

    compartments: List[CompartmentPayload] = Field(default_factory=list)

    # Permit book
    trailer_reg_expiration_date: Optional[date] = None
    trailer_reg_enforcement_date: Optional[date] = None
    trailer_inspection_shop: Optional[str] = Field(None, max_length=255)
    trailer_inspection_issue_date: Optional[date] = None
    trailer_inspection_expiration_date: Optional[date] = None
    tank_v_expiration_date: Optional[date] = None
    tank_k_expiration_date: Optional[date] = None
    tank_l_expiration_date: Optional[date] = None
    tank_t_expiration_date: Optional[date] = None
    tank_i_expiration_date: Optional[date] = None
    tank_p_expiration_date: Optional[date] = None
    tank_uc_expiration_date: Optional[date] = None

    notes: Optional[str] = None


class ActivePayload(BaseModel):
    active: bool


class OtherPermitResponse(BaseModel):
    id: int
    label: str
    expiration_date: Optional[date]

    class Config:
        from_attributes = True


class CompartmentResponse(BaseModel):
    comp_number: int
    max_gallons: float
    position: int

    class Config:
        from_attributes = True


class EquipmentResponse(BaseModel):
    """Fields common to trucks and trailers."""
    id: int
    company_id: int
    vin_number: Optional[str]
    make: Optional[str]
    model: Optional[str]
    year: Optional[int]
    region: Optional[str]
    local_area: Optional[str]
    status_code: Optional[str]
    status_location: Optional[str]
    active: bool
    notes: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Roster annotations
    combo_id: Optional[int] = None
    in_use_by: Optional[int] = None
    permits: List[PermitResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TruckResponse(EquipmentResponse):
    truck_name: str
    reg_expiration_date: Optional[date]
    reg_enforcement_date: Optional[date]
    inspection_shop: Optional[str]
    inspection_issue_date: Optional[date]
    inspection_expiration_date: Optional[date]
    ifta_expiration_date: Optional[date]
    ifta_enforcement_date: Optional[date]
    phmsa_expiration_date: Optional[date]
    alliance_expiration_date: Optional[date]
    fleet_ins_expiration_date: Optional[date]
    hazmat_lic_expiration_date: Optional[date]
    inner_bridge_expiration_date: Optional[date]
    other_permits: List[OtherPermitResponse] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record) -> "TruckResponse":
        from permitbook.app.services.permit_book import truck_permits

        response = cls.model_validate(record.truck)
        return response.model_copy(update={
            "other_permits": [OtherPermitResponse.model_validate(p) for p in record.other_permits],
            "combo_id": record.combo.id if record.combo else None,
            "in_use_by": record.combo.claimed_by if record.combo else None,
            "permits": [PermitResponse.from_entry(e) for e in truck_permits(record.truck, record.other_permits)],
        })


class TrailerResponse(EquipmentResponse):
    trailer_name: str
    cg_max: float
    last_load_config: Optional[str]
    trailer_reg_expiration_date: Optional[date]
    trailer_reg_enforcement_date: Optional[date]
    trailer_inspection_shop: Optional[str]
    trailer_inspection_issue_date: Optional[date]
    trailer_inspection_expiration_date: Optional[date]
    tank_v_expiration_date: Optional[date]
    tank_k_expiration_date: Optional[date]
    tank_l_expiration_date: Optional[date]
    tank_t_expiration_date: Optional[date]
    tank_i_expiration_date: Optional[date]
    tank_p_expiration_date: Optional[date]
    tank_uc_expiration_date: Optional[date]
    compartments: List[CompartmentResponse] = Field(default_factory=list)
    total_capacity_gallons: float = 0

    @classmethod
    def from_record(cls, record) -> "TrailerResponse":
        from permitbook.app.services.permit_book import trailer_permits

        response = cls.model_validate(record.trailer)
        compartments = [CompartmentResponse.model_validate(c) for c in record.compartments]
        return response.model_copy(update={
            "compartments": compartments,
            "total_capacity_gallons": sum(c.max_gallons for c in compartments),
            "combo_id": record.combo.id if record.combo else None,
            "in_use_by": record.combo.claimed_by if record.combo else None,
            "permits": [PermitResponse.from_entry(e) for e in trailer_permits(record.trailer)],
        })


class TruckListResponse(BaseModel):
    trucks: List[TruckResponse]
    total: int


class TrailerListResponse(BaseModel):
    trailers: List[TrailerResponse]
    total: int


class AvailableEquipmentResponse(BaseModel):
    """Active equipment not party to any active combo."""
    trucks: List[TruckResponse]
    trailers: List[TrailerResponse]
