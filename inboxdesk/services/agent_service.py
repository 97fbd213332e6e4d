"""
Agent Service

Account-scoped agent management. Agents are never hard-deleted from the
API; DELETE deactivates them.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, hash_password
from inboxdesk.constants import CallerKind
from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import (
    AlreadyInStateError,
    DuplicateResourceError,
    ErrorCode,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from inboxdesk.models.agent import Agent, AgentStatus
from inboxdesk.models.role import CustomRole
from inboxdesk.permissions_config.permissions import DEFAULT_ROLES, OWNER_ROLE
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "An agent with this email already exists"


async def list_agents(
    db: AsyncSession,
    account_id: int,
    params: PaginationParams,
    status: str | None = None,
    search: str | None = None,
) -> Page:
    stmt = select(Agent).where(Agent.account_id == account_id)
    if status:
        stmt = stmt.where(Agent.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(Agent.name.ilike(pattern) | Agent.email.ilike(pattern))
    return await paginate(db, stmt.order_by(Agent.name, Agent.id), params)


async def get_account_agent(db: AsyncSession, account_id: int, agent_id) -> Agent:
    """Agent of the account; anything else is AGENT_NOT_FOUND."""
    try:
        agent_id = int(agent_id)
    except (TypeError, ValueError):
        raise ResourceNotFoundError("Agent", error_code=ErrorCode.AGENT_NOT_FOUND)
    agent = await db.get(Agent, agent_id)
    if agent is None or agent.account_id != account_id:
        raise ResourceNotFoundError("Agent", error_code=ErrorCode.AGENT_NOT_FOUND)
    return agent


async def _resolve_role(db: AsyncSession, account_id: int, role: str | None, custom_role_id: int | None):
    """Return (role_name, custom_role_id) for an assignment."""
    if custom_role_id is not None:
        custom_role = await db.get(CustomRole, custom_role_id)
        if custom_role is None or custom_role.account_id != account_id:
            raise ResourceNotFoundError("Role", error_code=ErrorCode.ROLE_NOT_FOUND)
        return "custom", custom_role.id

    role = role or "agent"
    if role not in DEFAULT_ROLES:
        raise ValidationError(f"Invalid role: {role}", field="role")
    if role == OWNER_ROLE:
        raise ValidationError("The owner role cannot be assigned", field="role")
    return role, None


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    stmt = select(Agent.id).where(func.lower(Agent.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(Agent.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_agent(
    db: AsyncSession,
    account_id: int,
    name: str,
    email: str,
    password: str,
    role: str | None = None,
    custom_role_id: int | None = None,
) -> Agent:
    if await _email_taken(db, email):
        raise DuplicateResourceError(DUPLICATE_EMAIL_MESSAGE, field="email")
    role_name, custom_role_id = await _resolve_role(db, account_id, role, custom_role_id)

    agent = Agent(
        account_id=account_id,
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role_name,
        custom_role_id=custom_role_id,
        status=AgentStatus.active.value,
    )
    db.add(agent)
    await commit_or_conflict(db, DUPLICATE_EMAIL_MESSAGE, field="email")
    await db.refresh(agent)
    logger.info("Agent created: id=%d account_id=%d", agent.id, account_id)
    return agent


async def update_agent(db: AsyncSession, agent: Agent, updates: dict) -> Agent:
    updates = dict(updates)
    if updates.get("email") is not None:
        updates["email"] = updates["email"].lower()
        if updates["email"] != agent.email and await _email_taken(db, updates["email"], exclude_id=agent.id):
            raise DuplicateResourceError(DUPLICATE_EMAIL_MESSAGE, field="email")
    if "password" in updates:
        password = updates.pop("password")
        if password is None:
            raise ValidationError("password cannot be null", field="password")
        updates["password_hash"] = hash_password(password)
    apply_updates(agent, updates, ("email", "name", "password_hash"))
    await commit_or_conflict(db, DUPLICATE_EMAIL_MESSAGE, field="email")
    await db.refresh(agent)
    return agent


async def change_role(
    db: AsyncSession,
    agent: Agent,
    caller: CallerContext,
    role: str | None = None,
    custom_role_id: int | None = None,
) -> tuple[Agent, str]:
    """
    Assign a default or custom role.

    Returns:
        (agent, previous role name)
    """
    if agent.is_owner and caller.role != OWNER_ROLE:
        raise PermissionDeniedError("Only the owner can change the owner's role")
    if agent.is_owner:
        raise ValidationError("The account owner's role cannot be changed", field="role")

    previous = agent.custom_role.name if agent.custom_role else agent.role
    agent.role, agent.custom_role_id = await _resolve_role(db, agent.account_id, role, custom_role_id)
    await db.commit()
    await db.refresh(agent)
    return agent, previous


async def deactivate_agent(db: AsyncSession, agent: Agent, caller: CallerContext) -> Agent:
    if caller.kind == CallerKind.AGENT and caller.caller_id == agent.id:
        raise ValidationError("You cannot deactivate yourself")
    if agent.is_owner:
        raise PermissionDeniedError("The account owner cannot be deactivated")
    if agent.status == AgentStatus.inactive.value:
        raise AlreadyInStateError("Agent", AgentStatus.inactive.value)
    agent.status = AgentStatus.inactive.value
    await db.commit()
    await db.refresh(agent)
    return agent


async def activate_agent(db: AsyncSession, agent: Agent) -> Agent:
    if agent.status == AgentStatus.active.value:
        raise AlreadyInStateError("Agent", AgentStatus.active.value)
    agent.status = AgentStatus.active.value
    await db.commit()
    await db.refresh(agent)
    return agent
