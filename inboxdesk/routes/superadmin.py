"""
Superadmin routes (/api/superadmin).

Platform-wide tenant management plus account management inside any
tenant. Destructive deletes require ``{"confirm": "DELETE"}`` in the body.
"""

import logging

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, require_superadmin
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode, ResourceNotFoundError, ValidationError
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.tenant import Tenant, TenantStatus
from inboxdesk.schemas.account import AccountResponse
from inboxdesk.schemas.admin import AccountCreate, AccountUpdate
from inboxdesk.schemas.common import ConfirmDelete, ok, serialize
from inboxdesk.schemas.tenant import SubdomainCheck, TenantCreate, TenantResponse, TenantUpdate
from inboxdesk.services import account_service, tenant_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import parse_resource_id
from inboxdesk.utils.pagination import PaginationParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/superadmin", tags=["Superadmin"])

CONFIRM_TOKEN = "DELETE"


def _require_confirmation(data: ConfirmDelete | None) -> None:
    if data is None or data.confirm != CONFIRM_TOKEN:
        raise ValidationError(
            'This action is irreversible. Send {"confirm": "DELETE"} to proceed.',
            field="confirm",
            error_code=ErrorCode.CONFIRMATION_REQUIRED,
        )


async def _load_tenant(db: AsyncSession, raw_id) -> Tenant:
    tenant_id = parse_resource_id(raw_id)
    if tenant_id is None:
        raise ResourceNotFoundError("Tenant", error_code=ErrorCode.TENANT_NOT_FOUND)
    return await tenant_service.get_tenant(db, tenant_id)


# ============================================================================
# Tenants
# ============================================================================


@router.get("/tenants")
async def list_tenants(
    status: str | None = None,
    search: str | None = None,
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    page = await tenant_service.list_tenants(db, pagination, status=status, search=search)
    return ok([serialize(TenantResponse, t) for t in page.items], pagination=page.pagination)


@router.post("/tenants", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    request: Request,
    data: TenantCreate,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await tenant_service.create_tenant(
        db,
        name=data.name,
        subdomain=data.subdomain,
        settings=data.settings,
        admin_email=data.admin_email,
        admin_password=data.admin_password,
        admin_name=data.admin_name,
    )
    await services.audit.record(
        request,
        caller,
        AuditAction.TENANT_CREATED,
        "tenant",
        tenant.id,
        {"name": tenant.name, "subdomain": tenant.subdomain, "adminEmail": data.admin_email},
        tenant_id=tenant.id,
    )
    return ok(serialize(TenantResponse, tenant))


@router.post("/tenants/validate-subdomain")
async def validate_subdomain(
    data: SubdomainCheck,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    return ok(await tenant_service.validate_subdomain(db, data.subdomain))


@router.get("/tenants/{tenant_id}")
async def get_tenant(
    tenant_id: str,
    include_metrics: bool = False,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await _load_tenant(db, tenant_id)
    metrics = await tenant_service.get_tenant_metrics(db, tenant.id) if include_metrics else None
    return ok(serialize(TenantResponse, tenant, metrics=metrics))


@router.put("/tenants/{tenant_id}")
async def update_tenant(
    request: Request,
    tenant_id: str,
    data: TenantUpdate,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await _load_tenant(db, tenant_id)
    updates = data.model_dump(exclude_unset=True)
    tenant = await tenant_service.update_tenant(db, tenant, updates)
    await services.audit.record(
        request, caller, AuditAction.TENANT_UPDATED, "tenant", tenant.id, {"fields": sorted(updates)}, tenant_id=tenant.id
    )
    return ok(serialize(TenantResponse, tenant))


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    request: Request,
    tenant_id: str,
    data: ConfirmDelete | None = Body(None),
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await _load_tenant(db, tenant_id)
    _require_confirmation(data)
    deleted_id, subdomain = tenant.id, tenant.subdomain
    await tenant_service.delete_tenant(db, tenant)
    await services.audit.record(
        request, caller, AuditAction.TENANT_DELETED, "tenant", deleted_id, {"subdomain": subdomain}, tenant_id=deleted_id
    )
    return ok({"id": deleted_id}, message="Tenant deleted")


async def _set_tenant_status(request, tenant_id, caller, db, services, new_status: TenantStatus, action: AuditAction):
    tenant = await _load_tenant(db, tenant_id)
    tenant = await tenant_service.set_tenant_status(db, tenant, new_status)
    await services.audit.record(request, caller, action, "tenant", tenant.id, tenant_id=tenant.id)
    return ok(serialize(TenantResponse, tenant), message=f"Tenant {new_status.value}")


@router.post("/tenants/{tenant_id}/deactivate")
async def deactivate_tenant(
    request: Request,
    tenant_id: str,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    return await _set_tenant_status(
        request, tenant_id, caller, db, services, TenantStatus.inactive, AuditAction.TENANT_DEACTIVATED
    )


@router.post("/tenants/{tenant_id}/activate")
async def activate_tenant(
    request: Request,
    tenant_id: str,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    return await _set_tenant_status(
        request, tenant_id, caller, db, services, TenantStatus.active, AuditAction.TENANT_ACTIVATED
    )


# ============================================================================
# Tenant accounts
# ============================================================================


@router.get("/tenants/{tenant_id}/accounts")
async def list_tenant_accounts(
    tenant_id: str,
    status: str | None = None,
    search: str | None = None,
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await _load_tenant(db, tenant_id)
    page = await account_service.list_accounts(db, tenant.id, pagination, status=status, search=search)
    return ok([serialize(AccountResponse, a) for a in page.items], pagination=page.pagination)


@router.post("/tenants/{tenant_id}/accounts", status_code=status.HTTP_201_CREATED)
async def create_tenant_account(
    request: Request,
    tenant_id: str,
    data: AccountCreate,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await _load_tenant(db, tenant_id)
    account = await account_service.create_account(
        db,
        tenant.id,
        name=data.name,
        email=data.email,
        owner_name=data.owner_name,
        owner_email=data.owner_email,
        owner_password=data.owner_password,
        plan_id=data.plan_id,
    )
    await services.audit.record(
        request,
        caller,
        AuditAction.ACCOUNT_CREATED,
        "account",
        account.id,
        {"name": account.name, "ownerEmail": data.owner_email},
        tenant_id=tenant.id,
        account_id=account.id,
    )
    return ok(serialize(AccountResponse, account))


@router.get("/tenants/{tenant_id}/accounts/{account_id}")
async def get_tenant_account(
    tenant_id: str,
    account_id: str,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await _load_tenant(db, tenant_id)
    account = await account_service.get_tenant_account(db, tenant.id, account_id)
    return ok(serialize(AccountResponse, account))


@router.put("/tenants/{tenant_id}/accounts/{account_id}")
async def update_tenant_account(
    request: Request,
    tenant_id: str,
    account_id: str,
    data: AccountUpdate,
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await _load_tenant(db, tenant_id)
    account = await account_service.get_tenant_account(db, tenant.id, account_id)
    updates = data.model_dump(exclude_unset=True)
    account = await account_service.update_account(db, account, updates)
    await services.audit.record(
        request,
        caller,
        AuditAction.ACCOUNT_UPDATED,
        "account",
        account.id,
        {"fields": sorted(updates)},
        tenant_id=tenant.id,
        account_id=account.id,
    )
    return ok(serialize(AccountResponse, account))


@router.delete("/tenants/{tenant_id}/accounts/{account_id}")
async def delete_tenant_account(
    request: Request,
    tenant_id: str,
    account_id: str,
    data: ConfirmDelete | None = Body(None),
    caller: CallerContext = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await _load_tenant(db, tenant_id)
    account = await account_service.get_tenant_account(db, tenant.id, account_id)
    _require_confirmation(data)
    deleted_id, name = account.id, account.name
    await account_service.delete_account(db, account)
    await services.audit.record(
        request,
        caller,
        AuditAction.ACCOUNT_DELETED,
        "account",
        deleted_id,
        {"name": name},
        tenant_id=tenant.id,
        account_id=None,
    )
    return ok({"id": deleted_id}, message="Account deleted")
