"""
Equipment combo database model.

A combo couples exactly one truck to exactly one trailer. Partial unique
indexes guarantee that at most one ACTIVE combo references a given truck
and at most one references a given trailer; inactive combos are history.
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Float, DateTime, ForeignKey, Index, CheckConstraint, text
)
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class EquipmentCombo(Base):
    """
    Truck/trailer pairing.

    claimed_by is advisory occupancy (the driver currently running the
    unit), not a lock.
    """
    __tablename__ = "equipment_combos"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    combo_name = Column(String(255), nullable=True)

    truck_id = Column(Integer, ForeignKey("trucks.id"), nullable=False, index=True)
    trailer_id = Column(Integer, ForeignKey("trailers.id"), nullable=False, index=True)

    tare_lbs = Column(Float, nullable=False)
    target_weight = Column(Float, nullable=True)

    active = Column(Boolean, default=True, nullable=False, index=True)

    claimed_by = Column(Integer, nullable=True, index=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    decoupled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("tare_lbs > 0", name="tare_positive"),
        Index("ix_equipment_combos_active_truck", "truck_id", unique=True,
              postgresql_where=text("active"), sqlite_where=text("active = 1")),
        Index("ix_equipment_combos_active_trailer", "trailer_id", unique=True,
              postgresql_where=text("active"), sqlite_where=text("active = 1")),
    )

    def __repr__(self):
        return (f"<EquipmentCombo(id={self.id}, truck_id={self.truck_id}, "
                f"trailer_id={self.trailer_id}, active={self.active})>")
