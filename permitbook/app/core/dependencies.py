"""
Request context dependencies for FastAPI.

Turns the bearer token into an explicit RequestContext. The membership
table, not the token, decides the caller's role in the company.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from permitbook.app.core.context import RequestContext
from permitbook.app.core.exceptions import AuthorizationError
from permitbook.app.core.jwt import decode_access_token
from permitbook.app.db.session import get_db
from permitbook.app.models.membership import Membership

security = HTTPBearer()


async def get_request_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> RequestContext:
    """
    Build the RequestContext for the current request.

    Checks:
    1. Token signature and expiry
    2. Token names a user and a company
    3. User is a member of that company (tenant check)

    Raises:
        HTTPException: 401 if the token is missing or invalid
        AuthorizationError: 403 if the user does not belong to the company
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    company_id = payload.get("company_id")
    if not user_id or not company_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.company_id == company_id
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise AuthorizationError("You are not a member of this company")

    return RequestContext(user_id=user_id, company_id=company_id, role=membership.role)
