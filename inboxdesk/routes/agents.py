"""Agent routes (/api/account/agents)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.constants.plans import QUOTA_MAX_AGENTS
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.agent import Agent, AgentStatus
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import AgentCreate, AgentResponse, AgentRoleUpdate, AgentUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import agent_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard
from inboxdesk.utils.pagination import PaginationParams
from inboxdesk.utils.quota import quota_required

router = APIRouter(prefix="/api/account/agents", tags=["Agents"])

agent_guard = ResourceGuard(Agent, resource_type="Agent", not_found=ErrorCode.AGENT_NOT_FOUND, param="agent_id")


@router.get("")
async def list_agents(
    status: str | None = None,
    search: str | None = None,
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(permission_required("agents:view")),
    db: AsyncSession = Depends(get_db),
):
    page = await agent_service.list_agents(db, caller.account_id, pagination, status=status, search=search)
    return ok([serialize(AgentResponse, a) for a in page.items], pagination=page.pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_agent(
    request: Request,
    data: AgentCreate,
    caller: CallerContext = Depends(
        quota_required("agents:create", QUOTA_MAX_AGENTS, Agent, Agent.status == AgentStatus.active.value)
    ),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    agent = await agent_service.create_agent(
        db, caller.account_id, data.name, data.email, data.password, data.role, data.custom_role_id
    )
    await services.audit.record(
        request, caller, AuditAction.AGENT_CREATED, "agent", agent.id, {"email": agent.email, "role": agent.role}
    )
    return ok(serialize(AgentResponse, agent))


@router.get("/{agent_id}")
async def get_agent(
    caller: CallerContext = Depends(permission_required("agents:view")),
    agent: Agent = Depends(agent_guard),
):
    return ok(serialize(AgentResponse, agent))


@router.put("/{agent_id}")
async def update_agent(
    request: Request,
    data: AgentUpdate,
    caller: CallerContext = Depends(permission_required("agents:edit")),
    agent: Agent = Depends(agent_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    agent = await agent_service.update_agent(db, agent, updates)
    # Never put the password itself in the trail
    await services.audit.record(request, caller, AuditAction.AGENT_UPDATED, "agent", agent.id, {"fields": sorted(updates)})
    return ok(serialize(AgentResponse, agent))


@router.put("/{agent_id}/role")
async def change_agent_role(
    request: Request,
    data: AgentRoleUpdate,
    caller: CallerContext = Depends(permission_required("agents:edit")),
    agent: Agent = Depends(agent_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    agent, previous = await agent_service.change_role(db, agent, caller, data.role, data.custom_role_id)
    await services.audit.record(
        request,
        caller,
        AuditAction.AGENT_ROLE_CHANGED,
        "agent",
        agent.id,
        {"oldRole": previous, "newRole": agent.role, "customRoleId": agent.custom_role_id},
    )
    return ok(serialize(AgentResponse, agent))


@router.delete("/{agent_id}")
async def deactivate_agent(
    request: Request,
    caller: CallerContext = Depends(permission_required("agents:delete")),
    agent: Agent = Depends(agent_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    """Agents are deactivated, never hard-deleted."""
    agent = await agent_service.deactivate_agent(db, agent, caller)
    await services.audit.record(request, caller, AuditAction.AGENT_DEACTIVATED, "agent", agent.id)
    return ok(serialize(AgentResponse, agent), message="Agent deactivated")


@router.post("/{agent_id}/activate")
async def activate_agent(
    request: Request,
    caller: CallerContext = Depends(
        quota_required("agents:edit", QUOTA_MAX_AGENTS, Agent, Agent.status == AgentStatus.active.value)
    ),
    agent: Agent = Depends(agent_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    agent = await agent_service.activate_agent(db, agent)
    await services.audit.record(request, caller, AuditAction.AGENT_ACTIVATED, "agent", agent.id)
    return ok(serialize(AgentResponse, agent), message="Agent activated")
