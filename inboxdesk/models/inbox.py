"""Inbox model: one messaging channel (a WhatsApp number) owned by an Account."""

import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class InboxStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class Inbox(Base):
    __tablename__ = "inboxes"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    channel_type = Column(String(30), nullable=False, default="whatsapp")
    phone_number = Column(String(30), nullable=True)

    # Credential used against the WhatsApp gateway for this inbox's session
    gateway_token = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=InboxStatus.active.value)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    members = relationship("InboxMember", back_populates="inbox", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (UniqueConstraint("account_id", "name", name="uq_inbox_account_name"),)


class InboxMember(Base):
    """Agent assignment to an inbox."""

    __tablename__ = "inbox_members"

    id = Column(Integer, primary_key=True, index=True)
    inbox_id = Column(Integer, ForeignKey("inboxes.id", ondelete="CASCADE"), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    inbox = relationship("Inbox", back_populates="members")
    agent = relationship("Agent", lazy="joined")

    __table_args__ = (UniqueConstraint("inbox_id", "agent_id", name="uq_inbox_member"),)
