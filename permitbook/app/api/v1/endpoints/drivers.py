"""
Driver Compliance API Endpoints.

Profile load/save, terminal access grants and identity migration. A
driver may read and edit their own profile and terminal access; admins
may do so for any driver in the company.
"""

from fastapi import APIRouter, Depends, status, Path
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.db.session import get_db
from permitbook.app.core.context import RequestContext
from permitbook.app.core.dependencies import get_request_context
from permitbook.app.core.guards import require_admin
from permitbook.app.schemas.compliance import (
    ProfileSave, ProfileResponse, TerminalGrantRequest, TerminalAccessResponse,
    IdentityMigrationRequest, IdentityMigrationResponse
)
from permitbook.app.services import compliance
from permitbook.app.services.identity import migrate_driver_identity

router = APIRouter(prefix="/drivers", tags=["Driver Compliance"])


@router.get("/{driver_id}/profile", response_model=ProfileResponse)
async def get_profile(
    driver_id: int = Path(..., description="Driver user ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    snapshot = await compliance.load_profile(db, ctx, driver_id)
    return ProfileResponse.from_snapshot(snapshot)


@router.put("/{driver_id}/profile", response_model=ProfileResponse)
async def save_profile(
    payload: ProfileSave,
    driver_id: int = Path(..., description="Driver user ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Replace the driver's profile, license, medical card, TWIC and port IDs.

    Sections left out of the payload are cleared. Terminal access is not
    touched; use the terminal endpoints.
    """
    snapshot = await compliance.save_profile(db, ctx, driver_id, payload)
    return ProfileResponse.from_snapshot(snapshot)


@router.get("/{driver_id}/terminals", response_model=list[TerminalAccessResponse])
async def list_terminal_access(
    driver_id: int = Path(..., description="Driver user ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    views = await compliance.list_terminal_access(db, ctx, driver_id)
    return [TerminalAccessResponse.from_view(v) for v in views]


@router.post("/{driver_id}/terminals", response_model=TerminalAccessResponse, status_code=status.HTTP_201_CREATED)
async def grant_terminal_access(
    request: TerminalGrantRequest,
    driver_id: int = Path(..., description="Driver user ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Card a driver at a terminal. carded_on defaults to today."""
    view = await compliance.grant_terminal_access(db, ctx, driver_id, request.terminal_id, request.carded_on)
    return TerminalAccessResponse.from_view(view)


@router.delete("/{driver_id}/terminals/{terminal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_terminal_access(
    driver_id: int = Path(..., description="Driver user ID"),
    terminal_id: int = Path(..., description="Terminal ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    await compliance.revoke_terminal_access(db, ctx, driver_id, terminal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/migrate-identity", response_model=IdentityMigrationResponse)
async def migrate_identity(
    request: IdentityMigrationRequest,
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a driver's compliance records to a recreated account (admin only).

    Safe to repeat: a second run reports zero counts.
    """
    result = await migrate_driver_identity(db, ctx, request.old_driver_id, request.new_driver_id)
    return IdentityMigrationResponse(
        old_driver_id=result.old_driver_id,
        new_driver_id=result.new_driver_id,
        profiles_moved=result.profiles_moved,
        terminal_grants_moved=result.terminal_grants_moved,
        terminal_grants_merged=result.terminal_grants_merged,
        load_records_moved=result.load_records_moved,
        combo_claims_moved=result.combo_claims_moved,
        combo_claims_cleared=result.combo_claims_cleared,
        memberships_moved=result.memberships_moved,
    )
