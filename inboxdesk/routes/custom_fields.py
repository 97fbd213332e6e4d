"""Custom field routes (/api/account/custom-fields)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.custom_field import CustomField
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import CustomFieldCreate, CustomFieldResponse, CustomFieldUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import custom_field_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard

router = APIRouter(prefix="/api/account/custom-fields", tags=["Custom Fields"])

field_guard = ResourceGuard(
    CustomField, resource_type="Custom field", not_found=ErrorCode.CUSTOM_FIELD_NOT_FOUND, param="field_id"
)


@router.get("")
async def list_custom_fields(
    caller: CallerContext = Depends(permission_required("contacts:view")),
    db: AsyncSession = Depends(get_db),
):
    fields = await custom_field_service.list_fields(db, caller.account_id)
    return ok([serialize(CustomFieldResponse, f) for f in fields])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_custom_field(
    request: Request,
    data: CustomFieldCreate,
    caller: CallerContext = Depends(permission_required("custom_fields:manage")),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    field = await custom_field_service.create_field(db, caller.account_id, data.model_dump())
    await services.audit.record(
        request, caller, AuditAction.CUSTOM_FIELD_CREATED, "custom_field", field.id, {"name": field.name}
    )
    return ok(serialize(CustomFieldResponse, field))


@router.get("/{field_id}")
async def get_custom_field(
    caller: CallerContext = Depends(permission_required("contacts:view")),
    field: CustomField = Depends(field_guard),
):
    return ok(serialize(CustomFieldResponse, field))


@router.put("/{field_id}")
async def update_custom_field(
    request: Request,
    data: CustomFieldUpdate,
    caller: CallerContext = Depends(permission_required("custom_fields:manage")),
    field: CustomField = Depends(field_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    field = await custom_field_service.update_field(db, field, updates)
    await services.audit.record(
        request, caller, AuditAction.CUSTOM_FIELD_UPDATED, "custom_field", field.id, {"fields": sorted(updates)}
    )
    return ok(serialize(CustomFieldResponse, field))


@router.delete("/{field_id}")
async def delete_custom_field(
    request: Request,
    caller: CallerContext = Depends(permission_required("custom_fields:manage")),
    field: CustomField = Depends(field_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    field_id, name = field.id, field.name
    await custom_field_service.delete_field(db, field)
    await services.audit.record(
        request, caller, AuditAction.CUSTOM_FIELD_DELETED, "custom_field", field_id, {"name": name}
    )
    return ok({"id": field_id}, message="Custom field deleted")
