"""
Pytest configuration and fixtures for InboxDesk tests

Each test function gets its own in-memory SQLite database (aiosqlite on a
StaticPool, foreign keys enabled) and an application built around it
through `create_app`.
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120

from inboxdesk import models  # noqa: E402, F401
from inboxdesk.auth import create_access_token  # noqa: E402
from inboxdesk.config import Settings  # noqa: E402
from inboxdesk.database import Base, build_engine, build_session_factory  # noqa: E402
from inboxdesk.models.admin_user import AdminRole  # noqa: E402
from main import create_app  # noqa: E402
from utils.mock_utils import (  # noqa: E402
    create_test_account,
    create_test_admin,
    create_test_agent,
    create_test_plan,
    create_test_subscription,
    create_test_tenant,
)

ADMIN_TOKEN = "test-admin-token"
ROOMY_QUOTAS = {"max_agents": 10, "max_inboxes": 10, "max_teams": 10}

TEST_SETTINGS = Settings(
    database_url="sqlite+aiosqlite:///:memory:",
    secret_key="test-secret-key-not-for-production",
    admin_token=ADMIN_TOKEN,
    app_domain="inboxdesk.test",
    enable_multitenancy=True,
    log_json=False,
    log_level="WARNING",
    stripe_secret_key=None,
    whatsapp_gateway_url="http://gateway.test",
    allowed_origins=["http://testserver"],
)


def bearer(principal) -> dict:
    """Authorization header for an Agent or AdminUser row"""
    kind = "admin" if hasattr(principal, "is_active") else "agent"
    token = create_access_token(f"{kind}:{principal.id}", TEST_SETTINGS)
    return {"Authorization": f"Bearer {token}"}


def admin_token_headers(tenant=None) -> dict:
    headers = {"X-Admin-Token": ADMIN_TOKEN}
    if tenant is not None:
        headers["X-Tenant-Slug"] = tenant.subdomain
    return headers


@pytest.fixture
def settings() -> Settings:
    return TEST_SETTINGS


@pytest.fixture
async def engine():
    engine = build_engine(TEST_SETTINGS, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and for asserting on committed rows"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory):
    return create_app(TEST_SETTINGS, session_factory)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


# ── seeded world ───────────────────────────────────────────────────────────────


@pytest.fixture
async def tenant(test_db):
    return await create_test_tenant(test_db, "acme")


@pytest.fixture
async def other_tenant(test_db):
    return await create_test_tenant(test_db, "globex")


@pytest.fixture
async def plan(test_db, tenant):
    return await create_test_plan(test_db, tenant, "Starter", quotas=ROOMY_QUOTAS, is_default=True)


@pytest.fixture
async def account(test_db, tenant, plan):
    account = await create_test_account(test_db, tenant, "Acme Support")
    await create_test_subscription(test_db, account, plan)
    return account


@pytest.fixture
async def other_account(test_db, tenant, plan):
    """Second account in the same tenant"""
    account = await create_test_account(test_db, tenant, "Acme Sales")
    await create_test_subscription(test_db, account, plan)
    return account


@pytest.fixture
async def owner(test_db, account):
    return await create_test_agent(test_db, account, is_owner=True)


@pytest.fixture
async def agent(test_db, account):
    return await create_test_agent(test_db, account, role="agent")


@pytest.fixture
async def other_owner(test_db, other_account):
    return await create_test_agent(test_db, other_account, is_owner=True)


@pytest.fixture
async def tenant_admin(test_db, tenant):
    return await create_test_admin(test_db, tenant)


@pytest.fixture
async def other_tenant_admin(test_db, other_tenant):
    return await create_test_admin(test_db, other_tenant)


@pytest.fixture
async def superadmin(test_db):
    return await create_test_admin(test_db, None, role=AdminRole.superadmin)


@pytest.fixture
def owner_headers(owner) -> dict:
    return bearer(owner)


@pytest.fixture
def agent_headers(agent) -> dict:
    return bearer(agent)


@pytest.fixture
def admin_headers(tenant_admin) -> dict:
    return bearer(tenant_admin)


@pytest.fixture
def superadmin_headers(superadmin) -> dict:
    return bearer(superadmin)
