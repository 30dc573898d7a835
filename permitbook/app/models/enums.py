"""
Enumerations shared by the equipment and compliance models.
"""

import enum


class MemberRole(str, enum.Enum):
    """
    Company membership role.

    Roles:
        ADMIN: Manages equipment, combos and every driver's permit book
        DRIVER: Couples/claims equipment and maintains own profile
    """
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"


class EquipmentStatus(str, enum.Enum):
    """Operational status code carried by trucks and trailers."""
    ACTIVE = "active"
    PARKED = "parked"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class ExpiryTier(str, enum.Enum):
    """
    Urgency classification of an expiration date.

    Declared most urgent first; ExpiryTier.severity() orders them.
    """
    EXPIRED = "EXPIRED"
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    HEALTHY = "HEALTHY"
    UNKNOWN = "UNKNOWN"

    def severity(self) -> int:
        """Lower is more urgent."""
        return list(ExpiryTier).index(self)


class EquipmentType(str, enum.Enum):
    TRUCK = "truck"
    TRAILER = "trailer"
