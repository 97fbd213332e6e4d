"""Role routes (/api/account/roles)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.role import CustomRole
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import CustomRoleResponse, RoleCreate, RoleUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import role_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard

router = APIRouter(prefix="/api/account/roles", tags=["Roles"])

role_guard = ResourceGuard(CustomRole, resource_type="Role", not_found=ErrorCode.ROLE_NOT_FOUND, param="role_id")


@router.get("")
async def list_roles(
    caller: CallerContext = Depends(permission_required("agents:view")),
    db: AsyncSession = Depends(get_db),
):
    """Default roles, the account's custom roles and the permission catalogue."""
    custom_roles = await role_service.list_custom_roles(db, caller.account_id)
    return ok(
        {
            "defaultRoles": role_service.default_roles(),
            "customRoles": [serialize(CustomRoleResponse, r) for r in custom_roles],
            "availablePermissions": role_service.available_permissions(),
        }
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(
    request: Request,
    data: RoleCreate,
    caller: CallerContext = Depends(permission_required("settings:edit")),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    role = await role_service.create_custom_role(db, caller.account_id, data.name, data.permissions, data.description)
    await services.audit.record(
        request, caller, AuditAction.ROLE_CREATED, "role", role.id, {"name": role.name, "permissions": role.permissions}
    )
    return ok(serialize(CustomRoleResponse, role))


@router.put("/{role_id}")
async def update_role(
    request: Request,
    data: RoleUpdate,
    caller: CallerContext = Depends(permission_required("settings:edit")),
    role: CustomRole = Depends(role_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    role = await role_service.update_custom_role(db, role, updates)
    await services.audit.record(request, caller, AuditAction.ROLE_UPDATED, "role", role.id, {"fields": sorted(updates)})
    return ok(serialize(CustomRoleResponse, role))


@router.delete("/{role_id}")
async def delete_role(
    request: Request,
    caller: CallerContext = Depends(permission_required("settings:edit")),
    role: CustomRole = Depends(role_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    role_id, name = role.id, role.name
    await role_service.delete_custom_role(db, role)
    await services.audit.record(request, caller, AuditAction.ROLE_DELETED, "role", role_id, {"name": name})
    return ok({"id": role_id}, message="Role deleted")
