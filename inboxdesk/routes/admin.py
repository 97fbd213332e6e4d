"""Tenant admin settings, audit trail and dashboard metrics (/api/admin)."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, require_tenant_admin
from inboxdesk.database import get_db
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.routes.account import audit_filters
from inboxdesk.schemas.account import AuditEntryResponse
from inboxdesk.schemas.admin import SettingUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import audit_service, stats_service, tenant_service
from inboxdesk.services.audit_service import AuditFilters
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/settings")
async def get_settings(caller: CallerContext = Depends(require_tenant_admin), db: AsyncSession = Depends(get_db)):
    tenant = await tenant_service.get_tenant(db, caller.tenant_id)
    return ok(tenant_service.get_settings(tenant))


@router.put("/settings/{key}")
async def update_setting(
    request: Request,
    key: str,
    data: SettingUpdate,
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    tenant = await tenant_service.get_tenant(db, caller.tenant_id)
    old_value, new_value = await tenant_service.update_setting(db, tenant, key, data.value)
    await services.audit.record(
        request,
        caller,
        AuditAction.SETTING_CHANGED,
        "setting",
        key,
        {"key": key, "oldValue": old_value, "newValue": new_value},
        tenant_id=tenant.id,
    )
    return ok({"key": key, "value": new_value}, message="Setting updated")


@router.get("/audit")
async def list_audit_entries(
    filters: AuditFilters = Depends(audit_filters),
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
):
    page = await audit_service.list_entries(db, filters, pagination, tenant_id=caller.tenant_id)
    return ok([serialize(AuditEntryResponse, e) for e in page.items], pagination=page.pagination)


@router.get("/audit/export")
async def export_audit_entries(
    export_format: str = Query("csv", alias="format"),
    filters: AuditFilters = Depends(audit_filters),
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
):
    content, media_type, filename = await audit_service.export_entries(
        db, filters, export_format, tenant_id=caller.tenant_id
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/stats")
async def get_stats(caller: CallerContext = Depends(require_tenant_admin), db: AsyncSession = Depends(get_db)):
    return ok(await stats_service.get_tenant_stats(db, caller.tenant_id))
