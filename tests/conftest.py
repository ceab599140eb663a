"""Shared test fixtures for the TPV call API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tpv_api.core.agents import AgentRegistry, get_agent_registry
from tpv_api.core.config import settings
from tpv_api.core.database import Base, get_db, get_session_factory
from tpv_api.main import app
from tpv_api.models.tpv_request import TPVRequest  # noqa: F401
from tpv_api.services.vapi import VapiClient, get_vapi_client

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
AGENT_PHONE = "+19059043544"


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry():
    return AgentRegistry({"MM23": AGENT_PHONE})


@pytest.fixture
def vapi():
    """Vapi client whose call placement always succeeds."""
    client = VapiClient(api_key="test-key")
    client.create_phone_call = AsyncMock(return_value={"id": "vapi-call-123", "status": "queued"})
    return client


@pytest.fixture
def twilio_configured():
    with patch.object(settings, "TWILIO_ACCOUNT_SID", "AC_test"), \
         patch.object(settings, "TWILIO_AUTH_TOKEN", "token"), \
         patch.object(settings, "TWILIO_PHONE_NUMBER", "+15550001111"):
        yield


@pytest_asyncio.fixture
async def client(session_factory, registry, vapi):
    """Async HTTP test client wired to the test database and fakes."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_agent_registry] = lambda: registry
    app.dependency_overrides[get_vapi_client] = lambda: vapi

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def tpv_form():
    """A complete, valid form submission (camelCase as sent by the frontend)."""
    return {
        "agentId": "MM23",
        "assistantId": "assistant-abc",
        "companyName": "Edison Energy",
        "customerName": "Jane Smith",
        "address": "123 Main St",
        "city": "Toronto",
        "province": "Ontario",
        "postalCode": "M5V 2T6",
        "phoneNumber": "4165551234",
        "email": "jane@example.com",
        "products": ["Heat Pump", "Smart Thermostat"],
        "salesPrice": "10000",
        "paymentOption": "finance",
        "financeCompany": "Financeit Canada Inc.",
        "interestRate": "9.99",
        "promotionalTerm": "12",
        "amortization": "60",
        "monthlyPayment": "",
    }
