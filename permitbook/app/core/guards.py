"""
Route-level guards.

Services enforce roles themselves through RequestContext; these
dependencies reject non-admins before any handler work happens.
"""

from fastapi import Depends

from permitbook.app.core.context import RequestContext
from permitbook.app.core.dependencies import get_request_context


async def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """
    Dependency for admin-only endpoints.

    Usage:
        @router.delete("/trucks/{truck_id}")
        async def delete_truck(truck_id: int, ctx: RequestContext = Depends(require_admin)):
            ...

    Raises:
        AuthorizationError 403 if the caller is not a company admin
    """
    ctx.require_admin()
    return ctx
