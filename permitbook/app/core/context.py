"""
Explicit request context.

The authenticated user and the company they are acting for are passed
into every service call instead of being looked up from ambient session
state. Every query the services run is filtered by company_id.
"""

from pydantic import BaseModel

from permitbook.app.models.enums import MemberRole
from permitbook.app.core.exceptions import AuthorizationError


class RequestContext(BaseModel):
    """Who is calling, and on behalf of which company."""
    user_id: int
    company_id: int
    role: MemberRole = MemberRole.DRIVER

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN

    def require_admin(self, action: str = "perform this action") -> None:
        if not self.is_admin:
            raise AuthorizationError(f"Admin access required to {action}")

    def require_self_or_admin(self, driver_id: int, action: str = "access this driver") -> None:
        if not self.is_admin and driver_id != self.user_id:
            raise AuthorizationError(f"Access denied. You may not {action}.")
