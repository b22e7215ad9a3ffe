import uuid
from collections.abc import AsyncGenerator
from decimal import Decimal
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from paintops.common.enums import UserRole
from paintops.common.security import create_access_token, get_password_hash
from paintops.config import settings
from paintops.db.base import Base
from paintops.db.models import *  # noqa: F401,F403 - ensure all models loaded

# In-memory SQLite shared across the connection pool - remap JSONB to JSON
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session):
    from paintops.api.deps import get_db
    from paintops.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _profile(db_session, role: UserRole, name: str):
    from paintops.db.models.profile import Profile

    user = Profile(
        id=uuid.uuid4(),
        email=f"{role.value}_{uuid.uuid4().hex[:8]}@test.com",
        hashed_password=get_password_hash("testpass123"),
        full_name=name,
        role=role.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session):
    return await _profile(db_session, UserRole.ADMIN, "Test Admin")


@pytest.fixture
async def manager_user(db_session):
    return await _profile(db_session, UserRole.JG_MANAGEMENT, "Test Manager")


@pytest.fixture
async def sub_user(db_session):
    return await _profile(db_session, UserRole.SUBCONTRACTOR, "Test Subcontractor")


def _headers(user) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def manager_headers(manager_user):
    return _headers(manager_user)


@pytest.fixture
def sub_headers(sub_user):
    return _headers(sub_user)


@pytest.fixture
async def phases(db_session):
    from paintops.core.phases.catalog import ensure_default_phases

    return {p.job_phase_label: p for p in await ensure_default_phases(db_session)}


@pytest.fixture
async def rate_card(db_session):
    """A property with a full rate card for 2 Bedroom units."""
    from paintops.db.models.property import BillingCategory, BillingDetail, Property, UnitSize

    prop = Property(
        property_name="Maple Court",
        address="120 Maple Court",
        city="Charlotte",
        state="NC",
        zip="28202",
        ap_name="Dana Whitfield",
        ap_email="ap@maplecourt.test",
    )
    two_bed = UnitSize(unit_size_label="2 Bedroom")
    individual = UnitSize(unit_size_label="Paint Individual Ceiling")
    categories = {
        name: BillingCategory(name=name, sort_order=order)
        for name, order in [
            ("Full Paint", 1),
            ("Painted Ceilings", 2),
            ("Accent Wall", 3),
            ("Extra Charges", 4),
        ]
    }
    db_session.add_all([prop, two_bed, individual, *categories.values()])
    await db_session.flush()

    def detail(category, bill, sub, unit_size=None, hourly=False):
        return BillingDetail(
            property_id=prop.id,
            category_id=categories[category].id,
            unit_size_id=unit_size.id if unit_size else None,
            bill_amount=Decimal(bill),
            sub_pay_amount=Decimal(sub),
            profit_amount=None if hourly else Decimal(bill) - Decimal(sub),
            is_hourly=hourly,
        )

    details = {
        "base": detail("Full Paint", "500.00", "300.00", two_bed),
        "ceiling": detail("Painted Ceilings", "150.00", "100.00", two_bed),
        "individual_ceiling": detail("Painted Ceilings", "40.00", "25.00", individual),
        "accent_wall": detail("Accent Wall", "75.00", "45.00"),
        "hourly": detail("Extra Charges", "50.00", "30.00", hourly=True),
    }
    db_session.add_all(details.values())
    await db_session.flush()
    return {
        "property": prop,
        "unit_size": two_bed,
        "categories": categories,
        "details": details,
    }


@pytest.fixture
async def job(db_session, phases, rate_card, admin_user, sub_user):
    from paintops.core.jobs.schemas import JobCreate
    from paintops.core.jobs.service import create_job

    body = JobCreate(
        property_id=rate_card["property"].id,
        unit_number="204",
        unit_size_id=rate_card["unit_size"].id,
        job_category_id=rate_card["categories"]["Full Paint"].id,
        job_type="Turnover",
        assigned_to=sub_user.id,
    )
    return await create_job(db_session, body, admin_user)


@pytest.fixture
async def extra_charges_template(db_session, phases):
    from paintops.db.models.email import EmailTemplate

    template = EmailTemplate(
        name="Extra Charges Approval",
        subject="Approval needed: {{property_name}} unit {{unit_number}}",
        body=(
            "Dear {{ap_contact_name}},\n\n"
            "Job Information:\n"
            "• Work Order: {{work_order_number}}\n"
            "• Extra work: {{extra_charges_description}}\n"
            "• Estimated cost: {{estimated_cost}}\n\n"
            "Thank you,"
        ),
        signature="JG Painting Pros",
        notification_type="extra_charges",
    )
    db_session.add(template)
    await db_session.flush()
    return template


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Point local storage at a per-test directory."""
    monkeypatch.setattr(settings, "STORAGE_LOCAL_PATH", str(tmp_path / "storage"))
    return tmp_path / "storage"


@pytest.fixture(autouse=True)
def mock_send_email():
    """Mock the email client used by endpoint handlers and services."""
    with patch(
        "paintops.integrations.sendgrid.EmailClient.send_email",
        return_value={"message_id": "mock-123", "status": "sent"},
    ) as mocked:
        yield mocked
