"""
Trailer (tanker) database models.

A trailer owns an ordered compartment set and a tank-specific permit
book: registration, annual inspection and the lettered tank tests
(V, K, L, T, I, P, UC).
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Float, Date, DateTime, ForeignKey, Text,
    CheckConstraint, UniqueConstraint
)
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class Trailer(Base):
    """Trailer model."""
    __tablename__ = "trailers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    # Identity
    trailer_name = Column(String(100), nullable=False, index=True)
    vin_number = Column(String(32), nullable=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)

    # Loading characteristics
    cg_max = Column(Float, default=1.0, nullable=False)
    last_load_config = Column(String(255), nullable=True)

    # Location / status
    region = Column(String(100), nullable=True)
    local_area = Column(String(100), nullable=True)
    status_code = Column(String(32), nullable=True)
    status_location = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)

    # Permit book
    trailer_reg_expiration_date = Column(Date, nullable=True)
    trailer_reg_enforcement_date = Column(Date, nullable=True)
    trailer_inspection_shop = Column(String(255), nullable=True)
    trailer_inspection_issue_date = Column(Date, nullable=True)
    trailer_inspection_expiration_date = Column(Date, nullable=True)

    # Tank tests
    tank_v_expiration_date = Column(Date, nullable=True)   # external visual
    tank_k_expiration_date = Column(Date, nullable=True)   # leakage
    tank_l_expiration_date = Column(Date, nullable=True)   # lining
    tank_t_expiration_date = Column(Date, nullable=True)   # thickness (2yr)
    tank_i_expiration_date = Column(Date, nullable=True)   # internal visual (5yr)
    tank_p_expiration_date = Column(Date, nullable=True)   # pressure (5yr)
    tank_uc_expiration_date = Column(Date, nullable=True)  # upper coupler (5yr)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Trailer(id={self.id}, name='{self.trailer_name}', company_id={self.company_id}, active={self.active})>"


class TrailerCompartment(Base):
    """
    One tank compartment.

    comp_number is 1-based and contiguous per trailer, position is
    0-based; both are renumbered by the compartment set before saving.
    """
    __tablename__ = "trailer_compartments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trailer_id = Column(Integer, ForeignKey("trailers.id"), nullable=False, index=True)
    comp_number = Column(Integer, nullable=False)
    max_gallons = Column(Float, nullable=False)
    position = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("trailer_id", "comp_number"),
        CheckConstraint("max_gallons > 0", name="max_gallons_positive"),
    )

    def __repr__(self):
        return f"<TrailerCompartment(trailer_id={self.trailer_id}, comp={self.comp_number}, gal={self.max_gallons})>"
