"""Agent model: a human user acting inside one Account under a Role."""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class AgentStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class Agent(Base):
    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)

    # Name of a default role ("owner", "administrator", ...) unless custom_role_id is set
    role = Column(String(50), nullable=False, default="agent")
    custom_role_id = Column(Integer, ForeignKey("custom_roles.id", ondelete="SET NULL"), nullable=True)
    is_owner = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=AgentStatus.active.value)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    account = relationship("Account", back_populates="agents")
    custom_role = relationship("CustomRole", lazy="joined")

    __table_args__ = (
        Index("idx_agent_account", "account_id"),
        Index("idx_agent_account_status", "account_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, email={self.email})>"
