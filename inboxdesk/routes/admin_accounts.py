"""Tenant admin account routes (/api/admin/accounts)."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, require_tenant_admin
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.account import Account, AccountStatus
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.schemas.account import AccountResponse, SubscriptionResponse
from inboxdesk.schemas.admin import AccountUpdate, AssignPlanRequest, SuspendRequest
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import account_service, subscription_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard
from inboxdesk.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/admin/accounts", tags=["Admin Accounts"])

account_guard = ResourceGuard(
    Account, resource_type="Account", not_found=ErrorCode.ACCOUNT_NOT_FOUND, scope="tenant", param="account_id"
)


@router.get("")
async def list_accounts(
    status: str | None = None,
    search: str | None = None,
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
):
    page = await account_service.list_accounts(db, caller.tenant_id, pagination, status=status, search=search)
    return ok([serialize(AccountResponse, a) for a in page.items], pagination=page.pagination)


@router.get("/{account_id}")
async def get_account(account: Account = Depends(account_guard)):
    return ok(serialize(AccountResponse, account))


@router.put("/{account_id}")
async def update_account(
    request: Request,
    data: AccountUpdate,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    account = await account_service.update_account(db, account, updates)
    await services.audit.record(
        request,
        caller,
        AuditAction.ACCOUNT_UPDATED,
        "account",
        account.id,
        {"fields": sorted(updates)},
        tenant_id=caller.tenant_id,
        account_id=account.id,
    )
    return ok(serialize(AccountResponse, account))


async def _set_status(request, caller, account, db, services, new_status: AccountStatus, action: AuditAction):
    account = await account_service.set_account_status(db, account, new_status)
    await services.audit.record(
        request, caller, action, "account", account.id, tenant_id=caller.tenant_id, account_id=account.id
    )
    return ok(serialize(AccountResponse, account), message=f"Account {new_status.value}")


@router.post("/{account_id}/deactivate")
async def deactivate_account(
    request: Request,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    return await _set_status(
        request, caller, account, db, services, AccountStatus.inactive, AuditAction.ACCOUNT_DEACTIVATED
    )


@router.post("/{account_id}/activate")
async def activate_account(
    request: Request,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    return await _set_status(request, caller, account, db, services, AccountStatus.active, AuditAction.ACCOUNT_ACTIVATED)


@router.post("/{account_id}/suspend")
async def suspend_account(
    request: Request,
    data: SuspendRequest,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    account = await account_service.suspend_account(db, account, data.reason)
    await services.audit.record(
        request,
        caller,
        AuditAction.USER_SUSPENDED,
        "account",
        account.id,
        {"reason": account.suspended_reason},
        tenant_id=caller.tenant_id,
        account_id=account.id,
    )
    return ok(serialize(AccountResponse, account), message="Account suspended")


@router.post("/{account_id}/reactivate")
async def reactivate_account(
    request: Request,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    account = await account_service.reactivate_account(db, account)
    await services.audit.record(
        request,
        caller,
        AuditAction.USER_REACTIVATED,
        "account",
        account.id,
        tenant_id=caller.tenant_id,
        account_id=account.id,
    )
    return ok(serialize(AccountResponse, account), message="Account reactivated")


@router.get("/{account_id}/subscription")
async def get_account_subscription(account: Account = Depends(account_guard), db: AsyncSession = Depends(get_db)):
    subscription = await subscription_service.get_account_subscription(db, account.id)
    return ok(serialize(SubscriptionResponse, subscription) if subscription else None)


@router.post("/{account_id}/subscription/assign-plan")
async def assign_plan(
    request: Request,
    data: AssignPlanRequest,
    caller: CallerContext = Depends(require_tenant_admin),
    account: Account = Depends(account_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    subscription, previous_plan_id = await subscription_service.assign_plan(db, account, data.plan_id)
    await services.audit.record(
        request,
        caller,
        AuditAction.USER_PLAN_ASSIGNED,
        "account",
        account.id,
        {"planId": subscription.plan_id, "previousPlanId": previous_plan_id},
        tenant_id=caller.tenant_id,
        account_id=account.id,
    )
    return ok(serialize(SubscriptionResponse, subscription), message="Plan assigned")
