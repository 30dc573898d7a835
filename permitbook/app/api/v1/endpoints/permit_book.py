"""
Permit Book and Expiry API Endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from permitbook.app.db.session import get_db
from permitbook.app.core.context import RequestContext
from permitbook.app.core.dependencies import get_request_context
from permitbook.app.models.enums import ExpiryTier
from permitbook.app.schemas.permit import PermitBookResponse, PermitBookEntryResponse, ExpiryStatusResponse
from permitbook.app.services import expiry
from permitbook.app.services.permit_book import permit_book

router = APIRouter(tags=["Permit Book"])


@router.get("/permit-book", response_model=PermitBookResponse)
async def get_permit_book(
    tier: Optional[ExpiryTier] = Query(None, description="Only entries in this tier"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Every permit on every truck and trailer of the company, most urgent
    first.
    """
    as_of = expiry.today()
    entries = await permit_book(db, ctx, tier=tier, as_of=as_of)
    return PermitBookResponse(
        entries=[PermitBookEntryResponse.from_entry(e) for e in entries],
        total=len(entries),
        as_of=as_of,
    )


@router.get("/expiry/classify", response_model=ExpiryStatusResponse)
async def classify_date(
    expiration_date: Optional[date] = Query(None, description="ISO date; omit for 'no date on file'"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Tier and label for an arbitrary expiration date."""
    return ExpiryStatusResponse.from_status(expiry.classify(expiration_date))
