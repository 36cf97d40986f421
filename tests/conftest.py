"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (leave, ledger, calendar, delegates, ...).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leavedesk.common.constants import LeaveType, UserRole
from leavedesk.config import settings
from leavedesk.database import Base, get_db
from leavedesk.leave.ledger import QuotaSettingsCache
from leavedesk.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → LeaveBalance, Notification, etc.)
import leavedesk.common.audit  # noqa: F401
import leavedesk.core_hr.models  # noqa: F401
import leavedesk.leave.models  # noqa: F401
import leavedesk.notifications.models  # noqa: F401
import leavedesk.work_calendar.models  # noqa: F401

from leavedesk.core_hr.models import Company, DelegateApprover, Employee
from leavedesk.leave.models import LeaveBalance, LeaveQuotaSetting
from leavedesk.work_calendar.models import PublicHoliday, SystemSetting, WorkingSaturday

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT (begin_nested) works.
    dbapi_conn.isolation_level = None


@event.listens_for(engine.sync_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leavedesk.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    # Tests change quota settings directly in the DB; never serve stale copies.
    application.state.quota_cache = QuotaSettingsCache(ttl_seconds=0)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


@pytest.fixture
def quotas() -> QuotaSettingsCache:
    return QuotaSettingsCache(ttl_seconds=0)


# ── Model factories ─────────────────────────────────────────────────

async def seed_employee(
    db: AsyncSession,
    *,
    first_name: str = "Test",
    last_name: str = "Employee",
    role: UserRole = UserRole.employee,
    manager_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    start_date: date = date(2020, 1, 6),
    is_active: bool = True,
) -> Employee:
    code = uuid.uuid4().hex[:6].upper()
    emp = Employee(
        id=uuid.uuid4(),
        employee_code=f"LD-{code}",
        email=f"{first_name.lower()}.{code.lower()}@leavedesk.test",
        first_name=first_name,
        last_name=last_name,
        department="Operations",
        role=role,
        company_id=company_id,
        start_date=start_date,
        manager_id=manager_id,
        is_active=is_active,
    )
    db.add(emp)
    await db.flush()
    return emp


async def seed_company(db: AsyncSession, *, code: str = "ACME") -> Company:
    company = Company(id=uuid.uuid4(), code=code, name=f"{code} Co., Ltd.")
    db.add(company)
    await db.flush()
    return company


DEFAULT_QUOTAS: dict[LeaveType, dict] = {
    LeaveType.vacation: dict(
        default_days=Decimal("10"), min_tenure_years=1,
        allow_carry_over=True, max_carry_over_days=Decimal("5"),
    ),
    LeaveType.sick: dict(
        default_days=Decimal("30"), medical_cert_threshold_days=Decimal("3"),
    ),
    LeaveType.personal: dict(default_days=Decimal("3")),
    LeaveType.ordination: dict(default_days=Decimal("120"), min_tenure_years=2),
    LeaveType.other: dict(default_days=Decimal("0"), is_balance_tracked=False),
}


async def seed_quotas(
    db: AsyncSession,
    overrides: Optional[dict[LeaveType, dict]] = None,
) -> None:
    """Insert the standard quota table, optionally overriding fields per type."""
    overrides = overrides or {}
    for leave_type, values in DEFAULT_QUOTAS.items():
        fields = {
            "min_tenure_years": 0,
            "allow_carry_over": False,
            "max_carry_over_days": Decimal("0"),
            "medical_cert_threshold_days": None,
            "is_balance_tracked": True,
            **values,
            **overrides.get(leave_type, {}),
        }
        db.add(LeaveQuotaSetting(leave_type=leave_type, **fields))
    await db.flush()


async def seed_balance(
    db: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: LeaveType,
    year: int,
    *,
    entitlement: Decimal = Decimal("10"),
    used: Decimal = Decimal("0"),
    carry_over: Decimal = Decimal("0"),
    is_auto_created: bool = False,
) -> LeaveBalance:
    balance = LeaveBalance(
        id=uuid.uuid4(),
        employee_id=employee_id,
        leave_type=leave_type,
        year=year,
        entitlement=entitlement,
        used=used,
        remaining=entitlement + carry_over - used,
        carry_over=carry_over,
        is_auto_created=is_auto_created,
    )
    db.add(balance)
    await db.flush()
    return balance


async def seed_holiday(
    db: AsyncSession,
    on: date,
    name: str = "Company Holiday",
    *,
    company_id: Optional[uuid.UUID] = None,
) -> PublicHoliday:
    holiday = PublicHoliday(id=uuid.uuid4(), date=on, name=name, company_id=company_id)
    db.add(holiday)
    await db.flush()
    return holiday


async def seed_working_saturday(
    db: AsyncSession,
    on: date,
    *,
    start: time = time(9, 0),
    end: time = time(12, 0),
    work_hours: Decimal = Decimal("3"),
    company_id: Optional[uuid.UUID] = None,
) -> WorkingSaturday:
    record = WorkingSaturday(
        id=uuid.uuid4(),
        date=on,
        start_time=start,
        end_time=end,
        work_hours=work_hours,
        company_id=company_id,
    )
    db.add(record)
    await db.flush()
    return record


async def seed_setting(db: AsyncSession, key: str, value: str) -> SystemSetting:
    setting = SystemSetting(key=key, value=value)
    db.add(setting)
    await db.flush()
    return setting


async def seed_delegate(
    db: AsyncSession,
    manager_id: uuid.UUID,
    delegate_id: uuid.UUID,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    is_active: bool = True,
) -> DelegateApprover:
    today = date.today()
    record = DelegateApprover(
        id=uuid.uuid4(),
        manager_id=manager_id,
        delegate_id=delegate_id,
        start_date=start_date or today - timedelta(days=1),
        end_date=end_date or today + timedelta(days=30),
        is_active=is_active,
    )
    db.add(record)
    await db.flush()
    return record


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": "access",
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(employee: Employee) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee.id, employee.role)}"}
