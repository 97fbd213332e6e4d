"""API key routes (/api/account/api-keys)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.constants import CallerKind
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.api_key import ApiKey
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import ApiKeyCreate, ApiKeyResponse
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services.api_key_service import ApiKeyService
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard

router = APIRouter(prefix="/api/account/api-keys", tags=["API Keys"])

api_key_guard = ResourceGuard(ApiKey, resource_type="API key", not_found=ErrorCode.API_KEY_NOT_FOUND, param="key_id")


@router.get("")
async def list_api_keys(
    include_revoked: bool = False,
    caller: CallerContext = Depends(permission_required("api_keys:manage")),
    db: AsyncSession = Depends(get_db),
):
    keys = await ApiKeyService(db).list_keys(caller.account_id, include_revoked=include_revoked)
    return ok([serialize(ApiKeyResponse, k) for k in keys])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: Request,
    data: ApiKeyCreate,
    caller: CallerContext = Depends(permission_required("api_keys:manage")),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    """
    Create an API key. The full key is returned once and only its hash is
    stored.
    """
    created_by = caller.caller_id if caller.kind == CallerKind.AGENT else None
    api_key, full_key = await ApiKeyService(db).create_key(
        caller.account_id, data.name, created_by, data.scopes, data.expires_in_days
    )
    await services.audit.record(
        request, caller, AuditAction.API_KEY_CREATED, "api_key", api_key.id, {"name": api_key.name, "prefix": api_key.key_prefix}
    )
    return ok(
        {**serialize(ApiKeyResponse, api_key), "key": full_key},
        message="Store this key now, it will not be shown again",
    )


@router.delete("/{key_id}")
async def revoke_api_key(
    request: Request,
    caller: CallerContext = Depends(permission_required("api_keys:manage")),
    api_key: ApiKey = Depends(api_key_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    api_key = await ApiKeyService(db).revoke_key(api_key)
    await services.audit.record(
        request, caller, AuditAction.API_KEY_REVOKED, "api_key", api_key.id, {"prefix": api_key.key_prefix}
    )
    return ok(serialize(ApiKeyResponse, api_key), message="API key revoked")
