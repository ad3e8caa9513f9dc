"""
Shared fixtures: an in-memory database per test and a few ready-made users.
"""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.data.database import build_engine, build_session_factory, create_tables, get_session
from src.data.models import DonationStatus, LeadAction, UserRole
from src.data.synthetic import SyntheticDataGenerator
from src.services import CampaignService, DonationService, LeadService, UserService

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = build_engine(TEST_DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = build_session_factory(engine)
    async with factory() as session:
        yield session


@pytest.fixture
def generator():
    """Create a synthetic data generator."""
    return SyntheticDataGenerator(seed=42)


@pytest_asyncio.fixture
async def admin(session):
    return await UserService(session).create_user({
        "first_name": "Asif",
        "last_name": "Shaikh",
        "phone": "9000000001",
        "email": "asif@example.com",
        "roles": [UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value],
    })


@pytest_asyncio.fixture
async def donor(session):
    return await UserService(session).create_user({
        "first_name": "Sana",
        "last_name": "Khan",
        "phone": "+91 90000 00002",
        "email": "sana@example.com",
        "roles": [UserRole.DONOR.value],
        "upi_ids": ["sana@okaxis"],
        "bank_account_number": "123456789012",
        "monthly_pledge_enabled": True,
        "monthly_pledge_amount": 500.0,
    })


@pytest_asyncio.fixture
async def beneficiary(session):
    return await UserService(session).create_user({
        "first_name": "Rizwan",
        "last_name": "Pathan",
        "phone": "9000000003",
        "roles": [UserRole.BENEFICIARY.value],
    })


@pytest.fixture
def make_lead(session, admin, beneficiary):
    async def _make(help_requested: float = 10000.0, **extra):
        data = {
            "beneficiary_id": beneficiary.id,
            "purpose": "Medical",
            "category": "Hospital Bill",
            "help_requested": help_requested,
            "case_action": LeadAction.PUBLISH,
        }
        data.update(extra)
        return await LeadService(session).create_lead(data, admin.id)
    return _make


@pytest.fixture
def make_donation(session, admin, donor):
    async def _make(amount: float = 5000.0, status: DonationStatus = DonationStatus.VERIFIED, **extra):
        data = {"donor_id": donor.id, "amount": amount, "status": status}
        data.update(extra)
        return await DonationService(session).create_donation(data, admin.id)
    return _make


@pytest.fixture
def make_campaign(session):
    async def _make(name: str = "Ramadan Relief 2025", goal: float = 100000.0, **extra):
        data = {
            "name": name,
            "goal": goal,
            "start_date": datetime(2025, 3, 1),
            "end_date": datetime(2025, 3, 31),
        }
        data.update(extra)
        return await CampaignService(session).create_campaign(data)
    return _make


@pytest_asyncio.fixture
async def client(session):
    from src.api.main import app

    async def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
