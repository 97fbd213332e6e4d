"""Inbox Service: account-scoped channel CRUD and agent assignment."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import DuplicateResourceError, ErrorCode, ResourceNotFoundError
from inboxdesk.models.inbox import Inbox, InboxMember
from inboxdesk.services.agent_service import get_account_agent
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

DUPLICATE_INBOX_MESSAGE = "An inbox with this name already exists"
UPDATABLE_FIELDS = {"name", "phone_number", "gateway_token", "status", "settings"}


async def list_inboxes(db: AsyncSession, account_id: int, params: PaginationParams, status: str | None = None) -> Page:
    stmt = select(Inbox).where(Inbox.account_id == account_id)
    if status:
        stmt = stmt.where(Inbox.status == status)
    return await paginate(db, stmt.order_by(Inbox.name, Inbox.id), params)


async def _name_taken(db: AsyncSession, account_id: int, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Inbox.id).where(Inbox.account_id == account_id, func.lower(Inbox.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Inbox.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_inbox(db: AsyncSession, account_id: int, data: dict) -> Inbox:
    name = data["name"].strip()
    if await _name_taken(db, account_id, name):
        raise DuplicateResourceError(DUPLICATE_INBOX_MESSAGE, field="name")

    inbox = Inbox(
        account_id=account_id,
        name=name,
        channel_type=data.get("channel_type") or "whatsapp",
        phone_number=data.get("phone_number"),
        gateway_token=data.get("gateway_token"),
        settings=data.get("settings") or {},
    )
    db.add(inbox)
    await commit_or_conflict(db, DUPLICATE_INBOX_MESSAGE, field="name")
    await db.refresh(inbox)
    logger.info("Inbox created: id=%d account_id=%d", inbox.id, account_id)
    return inbox


async def update_inbox(db: AsyncSession, inbox: Inbox, updates: dict) -> Inbox:
    if updates.get("name") is not None:
        updates["name"] = updates["name"].strip()
        if await _name_taken(db, inbox.account_id, updates["name"], exclude_id=inbox.id):
            raise DuplicateResourceError(DUPLICATE_INBOX_MESSAGE, field="name")
    apply_updates(inbox, updates, UPDATABLE_FIELDS)
    await commit_or_conflict(db, DUPLICATE_INBOX_MESSAGE, field="name")
    await db.refresh(inbox)
    return inbox


async def delete_inbox(db: AsyncSession, inbox: Inbox) -> None:
    inbox_id = inbox.id
    await db.delete(inbox)
    await db.commit()
    logger.info("Inbox deleted: id=%d", inbox_id)


async def list_members(db: AsyncSession, inbox_id: int) -> list[InboxMember]:
    result = await db.execute(
        select(InboxMember).where(InboxMember.inbox_id == inbox_id).order_by(InboxMember.created_at, InboxMember.id)
    )
    return list(result.scalars().all())


async def add_member(db: AsyncSession, inbox: Inbox, agent_id: int) -> InboxMember:
    agent = await get_account_agent(db, inbox.account_id, agent_id)
    existing = await db.execute(
        select(InboxMember.id).where(InboxMember.inbox_id == inbox.id, InboxMember.agent_id == agent.id)
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Agent is already assigned to this inbox", field="agentId")

    member = InboxMember(inbox_id=inbox.id, agent_id=agent.id)
    db.add(member)
    await commit_or_conflict(db, "Agent is already assigned to this inbox", field="agentId")
    await db.refresh(member)
    return member


async def remove_member(db: AsyncSession, inbox: Inbox, agent_id) -> None:
    agent = await get_account_agent(db, inbox.account_id, agent_id)
    result = await db.execute(
        select(InboxMember).where(InboxMember.inbox_id == inbox.id, InboxMember.agent_id == agent.id)
    )
    member = result.scalars().first()
    if member is None:
        raise ResourceNotFoundError("Inbox member", error_code=ErrorCode.AGENT_NOT_FOUND)
    await db.delete(member)
    await db.commit()
