"""
Centralized Test Configuration.
"""

from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from permitbook.app.main import app
from permitbook.app.db.session import get_db, Base
from permitbook.app.core.context import RequestContext
from permitbook.app.core.jwt import create_access_token
from permitbook.app.models.enums import MemberRole
from permitbook.app.models.membership import Membership
from permitbook.app.models.terminal import Terminal
from permitbook.app.schemas.equipment import TruckPayload, TrailerPayload
from permitbook.app.services import equipment as registry

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "today" for every date-sensitive test
TODAY = date(2026, 3, 15)

COMPANY_ID = 10
OTHER_COMPANY_ID = 20
ADMIN_ID = 1
DRIVER_ID = 2
OTHER_DRIVER_ID = 3
FOREIGN_ADMIN_ID = 9


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test: tables created before, dropped after."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Shared session for fixture data creation and service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, with get_db bound to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


@pytest.fixture
def frozen_today(mocker):
    """Pin the expiry classifier's notion of today."""
    mocker.patch("permitbook.app.services.expiry.today", return_value=TODAY)
    return TODAY


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------

@pytest.fixture
async def members(db_session):
    """Admin + two drivers in COMPANY_ID, one admin in OTHER_COMPANY_ID."""
    db_session.add_all([
        Membership(user_id=ADMIN_ID, company_id=COMPANY_ID, role=MemberRole.ADMIN),
        Membership(user_id=DRIVER_ID, company_id=COMPANY_ID, role=MemberRole.DRIVER),
        Membership(user_id=OTHER_DRIVER_ID, company_id=COMPANY_ID, role=MemberRole.DRIVER),
        Membership(user_id=FOREIGN_ADMIN_ID, company_id=OTHER_COMPANY_ID, role=MemberRole.ADMIN),
    ])
    await db_session.commit()


@pytest.fixture
def admin_ctx(members):
    return RequestContext(user_id=ADMIN_ID, company_id=COMPANY_ID, role=MemberRole.ADMIN)


@pytest.fixture
def driver_ctx(members):
    return RequestContext(user_id=DRIVER_ID, company_id=COMPANY_ID, role=MemberRole.DRIVER)


@pytest.fixture
def other_driver_ctx(members):
    return RequestContext(user_id=OTHER_DRIVER_ID, company_id=COMPANY_ID, role=MemberRole.DRIVER)


@pytest.fixture
def foreign_admin_ctx(members):
    return RequestContext(user_id=FOREIGN_ADMIN_ID, company_id=OTHER_COMPANY_ID, role=MemberRole.ADMIN)


@pytest.fixture
def auth_headers():
    """Bearer headers for any (user, company) pair."""
    def _headers(user_id: int, company_id: int = COMPANY_ID) -> dict:
        token = create_access_token(data={"sub": f"user{user_id}", "user_id": user_id, "company_id": company_id})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_headers(members, auth_headers):
    return auth_headers(ADMIN_ID)


@pytest.fixture
def driver_headers(members, auth_headers):
    return auth_headers(DRIVER_ID)


# ---------------------------------------------------------------------------
# Equipment factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_truck(db_session, admin_ctx):
    """Create a truck through the registry and return its id."""
    async def _make(name: str = "T1", ctx: RequestContext = None, **fields) -> int:
        record = await registry.create_truck(db_session, ctx or admin_ctx, TruckPayload(truck_name=name, **fields))
        return record.truck.id
    return _make


@pytest.fixture
def make_trailer(db_session, admin_ctx):
    """Create a trailer through the registry and return its id."""
    async def _make(name: str = "R1", ctx: RequestContext = None, **fields) -> int:
        record = await registry.create_trailer(db_session, ctx or admin_ctx, TrailerPayload(trailer_name=name, **fields))
        return record.trailer.id
    return _make


@pytest.fixture
async def terminals(db_session):
    """Two active terminals and one retired one; returns their ids."""
    rows = [
        Terminal(terminal_name="Colton", city="Colton", state="CA", renewal_days=365),
        Terminal(terminal_name="Carson", city="Carson", state="CA", renewal_days=180),
        Terminal(terminal_name="Old Yard", city="Fresno", state="CA", renewal_days=365, active=False),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return [t.id for t in rows]
