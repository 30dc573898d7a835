"""
Driver compliance profile models.

One profile per (driver, company). License, medical card and TWIC card
hang off the profile one-to-one; port IDs are a list. Child rows are keyed
by profile id so that re-keying the profile moves them with it.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class DriverProfile(Base):
    """Profile metadata for a driver within a company."""
    __tablename__ = "driver_profiles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    driver_id = Column(Integer, nullable=False, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    display_name = Column(String(255), nullable=True)
    hire_date = Column(Date, nullable=True)
    division = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    local_area = Column(String(100), nullable=True)
    employee_number = Column(String(50), nullable=True)

    # HazMat authorization renews with the CDL instead of carrying a date
    hazmat_linked_to_license = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("driver_id", "company_id"),
    )

    def __repr__(self):
        return f"<DriverProfile(driver_id={self.driver_id}, company_id={self.company_id})>"


class DriverLicense(Base):
    __tablename__ = "driver_licenses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, unique=True)

    license_class = Column(String(10), nullable=True)
    license_number = Column(String(50), nullable=True)
    issue_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)
    state_code = Column(String(2), nullable=True)
    endorsements = Column(JSON, nullable=False, default=list)
    restrictions = Column(JSON, nullable=False, default=list)


class MedicalCard(Base):
    """
    DOT medical certificate.

    When attached_to_license is set the dates are copies of the license
    dates taken at save time, never a live reference.
    """
    __tablename__ = "medical_cards"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, unique=True)

    issue_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)
    examiner_name = Column(String(255), nullable=True)
    attached_to_license = Column(Boolean, default=False, nullable=False)


class TwicCard(Base):
    __tablename__ = "twic_cards"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, unique=True)

    card_number = Column(String(50), nullable=True)
    issue_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)


class PortId(Base):
    __tablename__ = "port_ids"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False, index=True)

    port_name = Column(String(255), nullable=False)
    expiration_date = Column(Date, nullable=True)
