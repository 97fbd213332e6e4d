"""Account model: a customer workspace inside a Tenant."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class AccountStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=AccountStatus.active.value)
    suspended_reason = Column(Text, nullable=True)
    suspended_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship("Tenant", back_populates="accounts")
    agents = relationship("Agent", back_populates="account", cascade="all, delete-orphan", passive_deletes=True)
    inboxes = relationship("Inbox", cascade="all, delete-orphan", passive_deletes=True)
    teams = relationship("Team", cascade="all, delete-orphan", passive_deletes=True)
    subscription = relationship(
        "Subscription", back_populates="account", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_account_tenant", "tenant_id"),
        Index("idx_account_tenant_status", "tenant_id", "status"),
    )
