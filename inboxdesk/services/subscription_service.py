"""Subscription lookups, plan assignment and quota resolution."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.constants import DEFAULT_QUOTAS
from inboxdesk.database import utcnow
from inboxdesk.exceptions import ValidationError
from inboxdesk.models.account import Account
from inboxdesk.models.plan import BillingCycle, PlanStatus, Subscription, SubscriptionStatus
from inboxdesk.services import plan_service

logger = logging.getLogger(__name__)

PERIOD_LENGTHS = {
    BillingCycle.monthly.value: timedelta(days=30),
    BillingCycle.yearly.value: timedelta(days=365),
}


async def get_account_subscription(db: AsyncSession, account_id: int) -> Subscription | None:
    result = await db.execute(select(Subscription).where(Subscription.account_id == account_id))
    return result.scalars().first()


async def get_effective_quotas(db: AsyncSession, account_id: int) -> dict:
    """Plan quotas for the account, or the platform defaults without a plan."""
    subscription = await get_account_subscription(db, account_id)
    if subscription is None or subscription.plan is None:
        return dict(DEFAULT_QUOTAS)
    return plan_service.normalize_quotas(None, base=subscription.plan.quotas)


async def assign_plan(db: AsyncSession, account: Account, plan_id: int) -> tuple[Subscription, int | None]:
    """
    Point the account's subscription at `plan_id`, creating it if needed.

    Returns:
        (subscription, previous plan id or None)
    """
    plan = await plan_service.get_tenant_plan(db, account.tenant_id, plan_id)
    if plan.status != PlanStatus.active.value:
        raise ValidationError("Only active plans can be assigned", field="planId")

    now = utcnow()
    period = PERIOD_LENGTHS.get(plan.billing_cycle)
    subscription = await get_account_subscription(db, account.id)
    previous_plan_id = subscription.plan_id if subscription else None

    if subscription is None:
        subscription = Subscription(account_id=account.id, plan_id=plan.id)
        db.add(subscription)

    subscription.plan_id = plan.id
    subscription.plan = plan
    subscription.current_period_start = now
    subscription.current_period_end = now + period if period else None
    subscription.canceled_at = None
    if plan.trial_days and previous_plan_id is None:
        subscription.status = SubscriptionStatus.trial.value
        subscription.trial_ends_at = now + timedelta(days=plan.trial_days)
    else:
        subscription.status = SubscriptionStatus.active.value
        subscription.trial_ends_at = None

    await db.commit()
    await db.refresh(subscription)
    logger.info("Plan %d assigned to account %d (previous=%s)", plan.id, account.id, previous_plan_id)
    return subscription, previous_plan_id


async def set_subscription_status(db: AsyncSession, account_id: int, status: SubscriptionStatus) -> None:
    subscription = await get_account_subscription(db, account_id)
    if subscription is not None:
        subscription.status = status.value
