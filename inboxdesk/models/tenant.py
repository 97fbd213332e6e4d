"""
Tenant model.

A Tenant is the isolation boundary. It owns Accounts, Plans and admin users;
every tenant-scoped row carries a `tenant_id` FK.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class TenantStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    subdomain = Column(String(63), nullable=False, unique=True)  # e.g. "acme" in acme.example.com
    status = Column(String(20), nullable=False, default=TenantStatus.active.value)
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    accounts = relationship("Account", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    plans = relationship("Plan", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)
    admins = relationship("AdminUser", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("idx_tenant_subdomain", "subdomain"),
        Index("idx_tenant_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, subdomain={self.subdomain})>"
