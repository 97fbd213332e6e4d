"""Team routes (/api/account/teams)."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.constants.plans import QUOTA_MAX_TEAMS
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.team import Team
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import MemberAdd, TeamCreate, TeamMemberResponse, TeamResponse, TeamUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import team_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard
from inboxdesk.utils.pagination import PaginationParams
from inboxdesk.utils.quota import quota_required

router = APIRouter(prefix="/api/account/teams", tags=["Teams"])

team_guard = ResourceGuard(Team, resource_type="Team", not_found=ErrorCode.TEAM_NOT_FOUND, param="team_id")


@router.get("")
async def list_teams(
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(permission_required("teams:view")),
    db: AsyncSession = Depends(get_db),
):
    page = await team_service.list_teams(db, caller.account_id, pagination)
    counts = await team_service.member_counts(db, [t.id for t in page.items])
    return ok(
        [serialize(TeamResponse, t, member_count=counts.get(t.id, 0)) for t in page.items],
        pagination=page.pagination,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_team(
    request: Request,
    data: TeamCreate,
    caller: CallerContext = Depends(quota_required("teams:manage", QUOTA_MAX_TEAMS, Team)),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    """Create a new team."""
    team = await team_service.create_team(db, caller.account_id, data.name, data.description)
    await services.audit.record(request, caller, AuditAction.TEAM_CREATED, "team", team.id, {"name": team.name})
    return ok(serialize(TeamResponse, team, member_count=0))


@router.get("/{team_id}")
async def get_team(
    caller: CallerContext = Depends(permission_required("teams:view")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
):
    counts = await team_service.member_counts(db, [team.id])
    return ok(serialize(TeamResponse, team, member_count=counts.get(team.id, 0)))


@router.put("/{team_id}")
async def update_team(
    request: Request,
    data: TeamUpdate,
    caller: CallerContext = Depends(permission_required("teams:manage")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    updates = data.model_dump(exclude_unset=True)
    team = await team_service.update_team(db, team, updates)
    await services.audit.record(request, caller, AuditAction.TEAM_UPDATED, "team", team.id, {"fields": sorted(updates)})
    return ok(serialize(TeamResponse, team))


@router.delete("/{team_id}")
async def delete_team(
    request: Request,
    caller: CallerContext = Depends(permission_required("teams:manage")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    team_id, name = team.id, team.name
    await team_service.delete_team(db, team)
    await services.audit.record(request, caller, AuditAction.TEAM_DELETED, "team", team_id, {"name": name})
    return ok({"id": team_id}, message="Team deleted")


@router.get("/{team_id}/members")
async def list_team_members(
    caller: CallerContext = Depends(permission_required("teams:view")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
):
    members = await team_service.list_members(db, team.id)
    return ok([serialize(TeamMemberResponse, m) for m in members])


@router.post("/{team_id}/members", status_code=status.HTTP_201_CREATED)
async def add_team_member(
    request: Request,
    data: MemberAdd,
    caller: CallerContext = Depends(permission_required("teams:manage")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    member = await team_service.add_member(db, team, data.agent_id, data.role)
    await services.audit.record(
        request, caller, AuditAction.TEAM_MEMBER_ADDED, "team", team.id, {"agentId": member.agent_id}
    )
    return ok(serialize(TeamMemberResponse, member))


@router.delete("/{team_id}/members/{agent_id}")
async def remove_team_member(
    request: Request,
    agent_id: str,
    caller: CallerContext = Depends(permission_required("teams:manage")),
    team: Team = Depends(team_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    await team_service.remove_member(db, team, agent_id)
    await services.audit.record(
        request, caller, AuditAction.TEAM_MEMBER_REMOVED, "team", team.id, {"agentId": agent_id}
    )
    return ok(message="Agent removed from team")
