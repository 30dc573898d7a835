"""
Audit logging service.

Entries are added to the caller's session and committed together with
the change they describe, so an operation and its audit row land or fail
as one write.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.core.context import RequestContext
from permitbook.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    # Equipment registry
    EQUIPMENT_CREATED = "EQUIPMENT_CREATED"
    EQUIPMENT_UPDATED = "EQUIPMENT_UPDATED"
    EQUIPMENT_DELETED = "EQUIPMENT_DELETED"
    EQUIPMENT_ACTIVATION_CHANGED = "EQUIPMENT_ACTIVATION_CHANGED"

    # Coupling
    COMBO_COUPLED = "COMBO_COUPLED"
    COMBO_DECOUPLED = "COMBO_DECOUPLED"
    COMBO_UPDATED = "COMBO_UPDATED"
    COMBO_DELETED = "COMBO_DELETED"
    COMBO_CLAIMED = "COMBO_CLAIMED"
    COMBO_RELEASED = "COMBO_RELEASED"

    # Compliance
    DRIVER_PROFILE_SAVED = "DRIVER_PROFILE_SAVED"
    TERMINAL_ACCESS_GRANTED = "TERMINAL_ACCESS_GRANTED"
    TERMINAL_ACCESS_REVOKED = "TERMINAL_ACCESS_REVOKED"
    DRIVER_IDENTITY_MIGRATED = "DRIVER_IDENTITY_MIGRATED"


def record_event(
    db: AsyncSession,
    ctx: RequestContext,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Stage an audit entry in the current transaction.

    Args:
        db: Database session (not committed here)
        ctx: Caller context; supplies actor and company
        action: One of the AuditAction constants
        entity_type: "truck", "trailer", "combo", "driver", ...
        entity_id: Primary key of the entity acted upon
        metadata: Additional JSON-serializable context

    Returns:
        The pending AuditLog instance
    """
    entry = AuditLog(
        company_id=ctx.company_id,
        actor_id=ctx.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata
    )
    db.add(entry)
    return entry
