"""Team management service."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import DuplicateResourceError, ErrorCode, ResourceNotFoundError, ValidationError
from inboxdesk.models.team import Team, TeamMember, TeamMemberRole
from inboxdesk.services.agent_service import get_account_agent
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

DUPLICATE_TEAM_MESSAGE = "A team with this name already exists"


async def list_teams(db: AsyncSession, account_id: int, params: PaginationParams) -> Page:
    return await paginate(db, select(Team).where(Team.account_id == account_id).order_by(Team.name, Team.id), params)


async def member_counts(db: AsyncSession, team_ids: list[int]) -> dict[int, int]:
    if not team_ids:
        return {}
    result = await db.execute(
        select(TeamMember.team_id, func.count(TeamMember.id))
        .where(TeamMember.team_id.in_(team_ids))
        .group_by(TeamMember.team_id)
    )
    return {team_id: count for team_id, count in result.all()}


async def _name_taken(db: AsyncSession, account_id: int, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Team.id).where(Team.account_id == account_id, func.lower(Team.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Team.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_team(db: AsyncSession, account_id: int, name: str, description: str | None = None) -> Team:
    name = name.strip()
    if await _name_taken(db, account_id, name):
        raise DuplicateResourceError(DUPLICATE_TEAM_MESSAGE, field="name")
    team = Team(account_id=account_id, name=name, description=description)
    db.add(team)
    await commit_or_conflict(db, DUPLICATE_TEAM_MESSAGE, field="name")
    await db.refresh(team)
    return team


async def update_team(db: AsyncSession, team: Team, updates: dict) -> Team:
    """Update team details."""
    if updates.get("name") is not None:
        updates["name"] = updates["name"].strip()
        if await _name_taken(db, team.account_id, updates["name"], exclude_id=team.id):
            raise DuplicateResourceError(DUPLICATE_TEAM_MESSAGE, field="name")
    apply_updates(team, updates, ("name", "description"))
    await commit_or_conflict(db, DUPLICATE_TEAM_MESSAGE, field="name")
    await db.refresh(team)
    return team


async def delete_team(db: AsyncSession, team: Team) -> None:
    await db.delete(team)
    await db.commit()


async def list_members(db: AsyncSession, team_id: int) -> list[TeamMember]:
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.joined_at, TeamMember.id)
    )
    return list(result.scalars().all())


async def add_member(db: AsyncSession, team: Team, agent_id: int, role: str | None = None) -> TeamMember:
    """Add an agent of the same account to the team."""
    role = role or TeamMemberRole.MEMBER.value
    if role not in {r.value for r in TeamMemberRole}:
        raise ValidationError("role must be lead or member", field="role")

    agent = await get_account_agent(db, team.account_id, agent_id)
    existing = await db.execute(
        select(TeamMember.id).where(TeamMember.team_id == team.id, TeamMember.agent_id == agent.id)
    )
    if existing.first() is not None:
        raise DuplicateResourceError("Agent is already a member of this team", field="agentId")

    member = TeamMember(team_id=team.id, agent_id=agent.id, role=role)
    db.add(member)
    await commit_or_conflict(db, "Agent is already a member of this team", field="agentId")
    await db.refresh(member)
    return member


async def remove_member(db: AsyncSession, team: Team, agent_id) -> None:
    agent = await get_account_agent(db, team.account_id, agent_id)
    result = await db.execute(select(TeamMember).where(TeamMember.team_id == team.id, TeamMember.agent_id == agent.id))
    member = result.scalars().first()
    if member is None:
        raise ResourceNotFoundError("Team member", error_code=ErrorCode.AGENT_NOT_FOUND)
    await db.delete(member)
    await db.commit()
