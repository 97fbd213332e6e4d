"""Team and team membership models."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class TeamMemberRole(str, enum.Enum):
    """Role within a team."""

    LEAD = "lead"
    MEMBER = "member"


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (UniqueConstraint("account_id", "name", name="uq_team_account_name"),)


class TeamMember(Base):
    """Membership association between agents and teams."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=TeamMemberRole.MEMBER.value)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    team = relationship("Team", back_populates="members")
    agent = relationship("Agent", lazy="joined")

    __table_args__ = (UniqueConstraint("team_id", "agent_id", name="uq_team_member"),)
