"""
Load history model.

Written by the loading workflow when a driver begins a load. The
compliance core never creates these; it only re-keys them when a
driver's account identifier changes.
"""

from sqlalchemy import Column, Integer, Float, DateTime
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class LoadRecord(Base):
    __tablename__ = "load_records"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    driver_id = Column(Integer, nullable=False, index=True)

    # Historical references; combos and terminals may since have been deleted
    combo_id = Column(Integer, nullable=True)
    terminal_id = Column(Integer, nullable=True)

    planned_total_gal = Column(Float, nullable=True)
    planned_gross_lbs = Column(Float, nullable=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LoadRecord(id={self.id}, driver_id={self.driver_id}, combo_id={self.combo_id})>"
