"""
Truck (tractor) database models.

A truck carries identity, location, operational status and a fixed
permit book of expiration dates, plus any number of free-form
"other permits".
"""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class Truck(Base):
    """
    Truck model.

    Soft-removed by setting active=False; hard deletes are ordered by the
    equipment registry (other permits, inactive combos, then the truck).
    """
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    # Identity
    truck_name = Column(String(100), nullable=False, index=True)
    vin_number = Column(String(32), nullable=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)

    # Location / status
    region = Column(String(100), nullable=True)
    local_area = Column(String(100), nullable=True)
    status_code = Column(String(32), nullable=True)
    status_location = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    # Permit book
    reg_expiration_date = Column(Date, nullable=True)
    reg_enforcement_date = Column(Date, nullable=True)
    inspection_shop = Column(String(255), nullable=True)
    inspection_issue_date = Column(Date, nullable=True)
    inspection_expiration_date = Column(Date, nullable=True)
    ifta_expiration_date = Column(Date, nullable=True)
    ifta_enforcement_date = Column(Date, nullable=True)
    phmsa_expiration_date = Column(Date, nullable=True)
    alliance_expiration_date = Column(Date, nullable=True)
    fleet_ins_expiration_date = Column(Date, nullable=True)
    hazmat_lic_expiration_date = Column(Date, nullable=True)
    inner_bridge_expiration_date = Column(Date, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Truck(id={self.id}, name='{self.truck_name}', company_id={self.company_id}, active={self.active})>"


class TruckOtherPermit(Base):
    """An extra labelled permit on a truck (state permits and the like)."""
    __tablename__ = "truck_other_permits"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    truck_id = Column(Integer, ForeignKey("trucks.id"), nullable=False, index=True)
    label = Column(String(100), nullable=False)
    expiration_date = Column(Date, nullable=True)

    def __repr__(self):
        return f"<TruckOtherPermit(truck_id={self.truck_id}, label='{self.label}')>"
