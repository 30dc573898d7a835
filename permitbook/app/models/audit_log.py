"""
Audit Log Database Model.

Every state change made through the core leaves a row here.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from permitbook.app.db.session import Base


class AuditLog(Base):
    """
    Audit log entry.

    Events logged:
    - EQUIPMENT_CREATED / EQUIPMENT_UPDATED / EQUIPMENT_DELETED / EQUIPMENT_ACTIVATION_CHANGED
    - COMBO_COUPLED / COMBO_DECOUPLED / COMBO_UPDATED / COMBO_DELETED / COMBO_CLAIMED / COMBO_RELEASED
    - DRIVER_PROFILE_SAVED / TERMINAL_ACCESS_GRANTED / TERMINAL_ACCESS_REVOKED
    - DRIVER_IDENTITY_MIGRATED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    company_id = Column(Integer, index=True, nullable=False)
    actor_id = Column(Integer, index=True, nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # What was acted upon
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True, index=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
