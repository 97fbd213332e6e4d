"""
Account Service

Accounts are customer workspaces inside a tenant. Creating one also
creates its owner agent and, when the tenant has a default plan, its
subscription.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import hash_password
from inboxdesk.database import commit_or_conflict, utcnow
from inboxdesk.exceptions import (
    AlreadyInStateError,
    DuplicateResourceError,
    ErrorCode,
    ResourceNotFoundError,
    TenantMismatchError,
    ValidationError,
)
from inboxdesk.models.account import Account, AccountStatus
from inboxdesk.models.agent import Agent
from inboxdesk.models.plan import Plan, PlanStatus, Subscription, SubscriptionStatus
from inboxdesk.permissions_config.permissions import OWNER_ROLE
from inboxdesk.services import plan_service, subscription_service
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)


async def get_account(db: AsyncSession, account_id: int) -> Account:
    account = await db.get(Account, account_id)
    if account is None:
        raise ResourceNotFoundError("Account", error_code=ErrorCode.ACCOUNT_NOT_FOUND)
    return account


async def get_tenant_account(db: AsyncSession, tenant_id: int, account_id) -> Account:
    """Account by id within the tenant; another tenant's account looks missing."""
    try:
        account_id = int(account_id)
    except (TypeError, ValueError):
        raise ResourceNotFoundError("Account", error_code=ErrorCode.ACCOUNT_NOT_FOUND)

    account = await get_account(db, account_id)
    if account.tenant_id != tenant_id:
        logger.warning(
            f"Blocked cross-tenant access to Account {account_id}",
            extra={"type": "security_violation", "resource_type": "Account", "owner_id": account.tenant_id},
        )
        raise TenantMismatchError("Account", error_code=ErrorCode.ACCOUNT_NOT_FOUND, owner_id=account.tenant_id)
    return account


async def list_accounts(
    db: AsyncSession,
    tenant_id: int,
    params: PaginationParams,
    status: str | None = None,
    search: str | None = None,
) -> Page:
    stmt = select(Account).where(Account.tenant_id == tenant_id)
    if status:
        stmt = stmt.where(Account.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Account.name.ilike(pattern), Account.email.ilike(pattern)))
    return await paginate(db, stmt.order_by(Account.created_at.desc(), Account.id.desc()), params)


async def create_account(
    db: AsyncSession,
    tenant_id: int,
    name: str,
    email: str | None = None,
    owner_name: str | None = None,
    owner_email: str | None = None,
    owner_password: str | None = None,
    plan_id: int | None = None,
) -> Account:
    """
    Create an account in the tenant.

    The owner agent is created when owner credentials are given; the
    subscription uses `plan_id` or the tenant's default plan.
    """
    if owner_email and not owner_password:
        raise ValidationError("ownerPassword is required when ownerEmail is given", field="ownerPassword")
    if owner_email:
        taken = await db.execute(select(Agent.id).where(func.lower(Agent.email) == owner_email.lower()))
        if taken.first() is not None:
            raise DuplicateResourceError("An agent with this email already exists", field="ownerEmail")

    plan = None
    if plan_id is not None:
        plan = await plan_service.get_tenant_plan(db, tenant_id, plan_id)
    else:
        result = await db.execute(
            select(Plan).where(
                Plan.tenant_id == tenant_id, Plan.is_default.is_(True), Plan.status == PlanStatus.active.value
            )
        )
        plan = result.scalars().first()

    account = Account(tenant_id=tenant_id, name=name, email=email, status=AccountStatus.active.value)
    db.add(account)
    await db.flush()

    if owner_email:
        db.add(
            Agent(
                account_id=account.id,
                name=owner_name or name,
                email=owner_email.lower(),
                password_hash=hash_password(owner_password),
                role=OWNER_ROLE,
                is_owner=True,
            )
        )
    if plan is not None:
        db.add(
            Subscription(
                account_id=account.id,
                plan_id=plan.id,
                status=SubscriptionStatus.trial.value if plan.trial_days else SubscriptionStatus.active.value,
                current_period_start=utcnow(),
            )
        )

    await commit_or_conflict(db, "An agent with this email already exists", field="ownerEmail")
    await db.refresh(account)
    logger.info("Account created: id=%d tenant_id=%d", account.id, tenant_id)
    return account


async def update_account(db: AsyncSession, account: Account, updates: dict) -> Account:
    apply_updates(account, updates, ("name", "email"))
    await db.commit()
    await db.refresh(account)
    return account


async def set_account_status(db: AsyncSession, account: Account, status: AccountStatus) -> Account:
    """Activate or deactivate an account."""
    if account.status == status.value:
        raise AlreadyInStateError("Account", status.value)
    account.status = status.value
    if status == AccountStatus.active:
        account.suspended_reason = None
        account.suspended_at = None
    await db.commit()
    await db.refresh(account)
    return account


async def suspend_account(db: AsyncSession, account: Account, reason: str) -> Account:
    if not reason or not reason.strip():
        raise ValidationError("A suspension reason is required", field="reason")
    if account.status == AccountStatus.suspended.value:
        raise AlreadyInStateError("Account", AccountStatus.suspended.value)

    account.status = AccountStatus.suspended.value
    account.suspended_reason = reason.strip()
    account.suspended_at = utcnow()
    await subscription_service.set_subscription_status(db, account.id, SubscriptionStatus.suspended)
    await db.commit()
    await db.refresh(account)
    logger.info("Account suspended: id=%d", account.id)
    return account


async def reactivate_account(db: AsyncSession, account: Account) -> Account:
    if account.status != AccountStatus.suspended.value:
        raise AlreadyInStateError("Account", "not suspended")

    account.status = AccountStatus.active.value
    account.suspended_reason = None
    account.suspended_at = None
    await subscription_service.set_subscription_status(db, account.id, SubscriptionStatus.active)
    await db.commit()
    await db.refresh(account)
    logger.info("Account reactivated: id=%d", account.id)
    return account


async def delete_account(db: AsyncSession, account: Account) -> None:
    """Hard-delete; agents, inboxes, teams and the subscription cascade."""
    account_id = account.id
    await db.delete(account)
    await db.commit()
    logger.info("Account deleted: id=%d", account_id)
