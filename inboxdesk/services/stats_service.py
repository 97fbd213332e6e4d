"""Aggregate counts for the tenant admin dashboard."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.models.account import Account
from inboxdesk.models.agent import Agent
from inboxdesk.models.inbox import Inbox
from inboxdesk.models.plan import Plan, Subscription


async def _grouped(db: AsyncSession, stmt) -> dict[str, int]:
    return {status: count for status, count in (await db.execute(stmt)).all()}


async def get_tenant_stats(db: AsyncSession, tenant_id: int) -> dict:
    accounts_by_status = await _grouped(
        db,
        select(Account.status, func.count(Account.id)).where(Account.tenant_id == tenant_id).group_by(Account.status),
    )
    subscriptions_by_status = await _grouped(
        db,
        select(Subscription.status, func.count(Subscription.id))
        .join(Account, Subscription.account_id == Account.id)
        .where(Account.tenant_id == tenant_id)
        .group_by(Subscription.status),
    )
    plan_count = await db.scalar(select(func.count(Plan.id)).where(Plan.tenant_id == tenant_id))
    agent_count = await db.scalar(
        select(func.count(Agent.id)).join(Account, Agent.account_id == Account.id).where(Account.tenant_id == tenant_id)
    )
    inbox_count = await db.scalar(
        select(func.count(Inbox.id)).join(Account, Inbox.account_id == Account.id).where(Account.tenant_id == tenant_id)
    )
    return {
        "accounts": {"total": sum(accounts_by_status.values()), "byStatus": accounts_by_status},
        "subscriptions": {"total": sum(subscriptions_by_status.values()), "byStatus": subscriptions_by_status},
        "planCount": plan_count or 0,
        "agentCount": agent_count or 0,
        "inboxCount": inbox_count or 0,
    }
