"""
Driver compliance profile Pydantic schemas.

A save replaces profile fields, license, medical, TWIC and the port ID
list wholesale. Terminal access is not part of the save payload; it is
managed by separate grant/revoke calls.
"""

from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field

from permitbook.app.models.enums import ExpiryTier


class ProfileFields(BaseModel):
    display_name: Optional[str] = Field(None, max_length=255)
    hire_date: Optional[date] = None
    division: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    local_area: Optional[str] = Field(None, max_length=100)
    employee_number: Optional[str] = Field(None, max_length=50)

    class Config:
        from_attributes = True


class LicenseSchema(BaseModel):
    license_class: Optional[str] = Field(None, max_length=10)
    license_number: Optional[str] = Field(None, max_length=50)
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    state_code: Optional[str] = Field(None, max_length=2)
    endorsements: List[str] = Field(default_factory=list)
    restrictions: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class MedicalCardSchema(BaseModel):
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None
    examiner_name: Optional[str] = Field(None, max_length=255)
    attached_to_license: bool = False

    class Config:
        from_attributes = True


class TwicCardSchema(BaseModel):
    card_number: Optional[str] = Field(None, max_length=50)
    issue_date: Optional[date] = None
    expiration_date: Optional[date] = None

    class Config:
        from_attributes = True


class PortIdSchema(BaseModel):
    port_name: str = Field(..., max_length=255)
    expiration_date: Optional[date] = None

    class Config:
        from_attributes = True


class ProfileSave(ProfileFields):
    """
    Full profile save.

    A missing license/medical/twic section clears the stored record.
    When medical.attached_to_license is set the medical dates are copied
    from the license on save.
    """
    hazmat_linked_to_license: bool = False
    license: Optional[LicenseSchema] = None
    medical: Optional[MedicalCardSchema] = None
    twic: Optional[TwicCardSchema] = None
    port_ids: List[PortIdSchema] = Field(default_factory=list)


class TerminalGrantRequest(BaseModel):
    terminal_id: int
    carded_on: Optional[date] = Field(None, description="Defaults to today")


class TerminalAccessResponse(BaseModel):
    terminal_id: int
    terminal_name: str
    city: Optional[str]
    state: Optional[str]
    carded_on: date
    renewal_days: int
    expires_on: date
    days_until_expiry: Optional[int]
    tier: ExpiryTier
    is_expired: bool

    @classmethod
    def from_view(cls, view) -> "TerminalAccessResponse":
        return cls(
            terminal_id=view.terminal_id,
            terminal_name=view.terminal_name,
            city=view.city,
            state=view.state,
            carded_on=view.carded_on,
            renewal_days=view.renewal_days,
            expires_on=view.expires_on,
            days_until_expiry=view.status.days_until,
            tier=view.status.tier,
            is_expired=view.status.is_expired,
        )


class ProfileResponse(BaseModel):
    driver_id: int
    company_id: int
    profile: Optional[ProfileFields]
    hazmat_linked_to_license: bool
    license: Optional[LicenseSchema]
    medical: Optional[MedicalCardSchema]
    twic: Optional[TwicCardSchema]
    port_ids: List[PortIdSchema]
    terminals: List[TerminalAccessResponse]

    @classmethod
    def from_snapshot(cls, snapshot) -> "ProfileResponse":
        return cls(
            driver_id=snapshot.driver_id,
            company_id=snapshot.company_id,
            profile=ProfileFields.model_validate(snapshot.profile) if snapshot.profile else None,
            hazmat_linked_to_license=snapshot.hazmat_linked_to_license,
            license=LicenseSchema.model_validate(snapshot.license) if snapshot.license else None,
            medical=MedicalCardSchema.model_validate(snapshot.medical) if snapshot.medical else None,
            twic=TwicCardSchema.model_validate(snapshot.twic) if snapshot.twic else None,
            port_ids=[PortIdSchema.model_validate(p) for p in snapshot.port_ids],
            terminals=[TerminalAccessResponse.from_view(t) for t in snapshot.terminals],
        )


class IdentityMigrationRequest(BaseModel):
    old_driver_id: int
    new_driver_id: int


class IdentityMigrationResponse(BaseModel):
    old_driver_id: int
    new_driver_id: int
    profiles_moved: int
    terminal_grants_moved: int
    terminal_grants_merged: int
    load_records_moved: int
    combo_claims_moved: int
    combo_claims_cleared: int
    memberships_moved: int
