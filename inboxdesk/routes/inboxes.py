"""Inbox routes (/api/account/inboxes)."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.constants.plans import QUOTA_MAX_INBOXES
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.inbox import Inbox
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import InboxCreate, InboxMemberResponse, InboxResponse, InboxUpdate, MemberAdd
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import inbox_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard
from inboxdesk.utils.pagination import PaginationParams
from inboxdesk.utils.quota import quota_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account/inboxes", tags=["Inboxes"])

inbox_guard = ResourceGuard(Inbox, resource_type="Inbox", not_found=ErrorCode.INBOX_NOT_FOUND, param="inbox_id")


@router.get("")
async def list_inboxes(
    status: str | None = None,
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(permission_required("inboxes:view")),
    db: AsyncSession = Depends(get_db),
):
    page = await inbox_service.list_inboxes(db, caller.account_id, pagination, status=status)
    return ok([serialize(InboxResponse, i) for i in page.items], pagination=page.pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_inbox(
    request: Request,
    data: InboxCreate,
    caller: CallerContext = Depends(quota_required("inboxes:manage", QUOTA_MAX_INBOXES, Inbox)),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    inbox = await inbox_service.create_inbox(db, caller.account_id, data.model_dump())
    await services.audit.record(request, caller, AuditAction.INBOX_CREATED, "inbox", inbox.id, {"name": inbox.name})
    return ok(serialize(InboxResponse, inbox))


@router.get("/{inbox_id}")
async def get_inbox(
    caller: CallerContext = Depends(permission_required("inboxes:view")),
    inbox: Inbox = Depends(inbox_guard),
):
    return ok(serialize(InboxResponse, inbox))


@router.put("/{inbox_id}")
async def update_inbox(
    request: Request,
    data: InboxUpdate,
    caller: CallerContext = Depends(permission_required("inboxes:manage")),
    inbox: Inbox = Depends(inbox_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    inbox = await inbox_service.update_inbox(db, inbox, updates)
    await services.audit.record(
        request, caller, AuditAction.INBOX_UPDATED, "inbox", inbox.id, {"fields": sorted(updates)}
    )
    return ok(serialize(InboxResponse, inbox))


@router.delete("/{inbox_id}")
async def delete_inbox(
    request: Request,
    caller: CallerContext = Depends(permission_required("inboxes:manage")),
    inbox: Inbox = Depends(inbox_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    inbox_id, name = inbox.id, inbox.name
    await inbox_service.delete_inbox(db, inbox)
    await services.audit.record(request, caller, AuditAction.INBOX_DELETED, "inbox", inbox_id, {"name": name})
    return ok({"id": inbox_id}, message="Inbox deleted")


@router.get("/{inbox_id}/status")
async def get_inbox_status(
    caller: CallerContext = Depends(permission_required("inboxes:view")),
    inbox: Inbox = Depends(inbox_guard),
    services: ServiceContainer = Depends(get_services),
):
    """Connection status of the inbox's WhatsApp session."""
    gateway_status = await services.whatsapp.get_session_status(inbox)
    return ok({"inboxId": inbox.id, **gateway_status})


# ============================================================================
# Members
# ============================================================================


@router.get("/{inbox_id}/members")
async def list_inbox_members(
    caller: CallerContext = Depends(permission_required("inboxes:view")),
    inbox: Inbox = Depends(inbox_guard),
    db: AsyncSession = Depends(get_db),
):
    members = await inbox_service.list_members(db, inbox.id)
    return ok([serialize(InboxMemberResponse, m) for m in members])


@router.post("/{inbox_id}/members", status_code=status.HTTP_201_CREATED)
async def add_inbox_member(
    request: Request,
    data: MemberAdd,
    caller: CallerContext = Depends(permission_required("inboxes:manage")),
    inbox: Inbox = Depends(inbox_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    member = await inbox_service.add_member(db, inbox, data.agent_id)
    await services.audit.record(
        request, caller, AuditAction.INBOX_MEMBER_ADDED, "inbox", inbox.id, {"agentId": member.agent_id}
    )
    return ok(serialize(InboxMemberResponse, member))


@router.delete("/{inbox_id}/members/{agent_id}")
async def remove_inbox_member(
    request: Request,
    agent_id: str,
    caller: CallerContext = Depends(permission_required("inboxes:manage")),
    inbox: Inbox = Depends(inbox_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    await inbox_service.remove_member(db, inbox, agent_id)
    await services.audit.record(
        request, caller, AuditAction.INBOX_MEMBER_REMOVED, "inbox", inbox.id, {"agentId": agent_id}
    )
    return ok(message="Agent removed from inbox")
