"""Credential checks for agent and admin logins."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import ensure_tenant_active, verify_password
from inboxdesk.database import utcnow
from inboxdesk.exceptions import AuthenticationError, InvalidCredentialsError
from inboxdesk.models.account import Account, AccountStatus
from inboxdesk.models.admin_user import AdminUser
from inboxdesk.models.agent import Agent, AgentStatus
from inboxdesk.models.tenant import Tenant

logger = logging.getLogger(__name__)


async def authenticate_agent(db: AsyncSession, email: str, password: str, tenant_id: int | None = None) -> Agent:
    """
    Verify agent credentials.

    When the request resolved a tenant, only agents of that tenant can log in.
    """
    stmt = (
        select(Agent, Account, Tenant.status)
        .join(Account, Agent.account_id == Account.id)
        .join(Tenant, Account.tenant_id == Tenant.id)
        .where(func.lower(Agent.email) == email.lower())
    )
    if tenant_id is not None:
        stmt = stmt.where(Account.tenant_id == tenant_id)
    row = (await db.execute(stmt)).first()

    if row is None or not verify_password(password, row[0].password_hash):
        logger.info("Failed agent login for %s", email)
        raise InvalidCredentialsError()
    agent, account, tenant_status = row

    ensure_tenant_active(account.tenant_id, tenant_status)
    if agent.status != AgentStatus.active.value:
        raise AuthenticationError("Agent is inactive")
    if account.status != AccountStatus.active.value:
        raise AuthenticationError(f"Account is {account.status}")

    agent.last_login_at = utcnow()
    await db.commit()
    return agent


async def authenticate_admin(db: AsyncSession, email: str, password: str, tenant_id: int | None = None) -> AdminUser:
    result = await db.execute(select(AdminUser).where(func.lower(AdminUser.email) == email.lower()))
    admin = result.scalars().first()

    if admin is None or not verify_password(password, admin.password_hash):
        logger.info("Failed admin login for %s", email)
        raise InvalidCredentialsError()
    if not admin.is_active:
        raise AuthenticationError("Admin is inactive")
    if tenant_id is not None and admin.tenant_id is not None and admin.tenant_id != tenant_id:
        raise InvalidCredentialsError()
    if admin.tenant_id is not None:
        tenant_status = await db.scalar(select(Tenant.status).where(Tenant.id == admin.tenant_id))
        ensure_tenant_active(admin.tenant_id, tenant_status)

    admin.last_login_at = utcnow()
    await db.commit()
    return admin
