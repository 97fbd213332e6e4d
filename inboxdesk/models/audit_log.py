"""
Audit log model.

Rows are append-only: the application exposes no update or delete path.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from inboxdesk.database import Base, utcnow


class AuditAction(str, enum.Enum):
    # Plans
    PLAN_CREATED = "PLAN_CREATED"
    PLAN_UPDATED = "PLAN_UPDATED"
    PLAN_DELETED = "PLAN_DELETED"
    PLAN_STRIPE_SYNCED = "PLAN_STRIPE_SYNCED"
    # Settings
    SETTING_CHANGED = "SETTING_CHANGED"
    # Account lifecycle as seen by tenant admins
    USER_SUSPENDED = "USER_SUSPENDED"
    USER_REACTIVATED = "USER_REACTIVATED"
    USER_PLAN_ASSIGNED = "USER_PLAN_ASSIGNED"
    # Tenants
    TENANT_CREATED = "TENANT_CREATED"
    TENANT_UPDATED = "TENANT_UPDATED"
    TENANT_DELETED = "TENANT_DELETED"
    TENANT_DEACTIVATED = "TENANT_DEACTIVATED"
    TENANT_ACTIVATED = "TENANT_ACTIVATED"
    # Accounts
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
    ACCOUNT_ACTIVATED = "ACCOUNT_ACTIVATED"
    # Agents
    AGENT_CREATED = "AGENT_CREATED"
    AGENT_UPDATED = "AGENT_UPDATED"
    AGENT_ROLE_CHANGED = "AGENT_ROLE_CHANGED"
    AGENT_DEACTIVATED = "AGENT_DEACTIVATED"
    AGENT_ACTIVATED = "AGENT_ACTIVATED"
    # Inboxes
    INBOX_CREATED = "INBOX_CREATED"
    INBOX_UPDATED = "INBOX_UPDATED"
    INBOX_DELETED = "INBOX_DELETED"
    INBOX_MEMBER_ADDED = "INBOX_MEMBER_ADDED"
    INBOX_MEMBER_REMOVED = "INBOX_MEMBER_REMOVED"
    # Teams
    TEAM_CREATED = "TEAM_CREATED"
    TEAM_UPDATED = "TEAM_UPDATED"
    TEAM_DELETED = "TEAM_DELETED"
    TEAM_MEMBER_ADDED = "TEAM_MEMBER_ADDED"
    TEAM_MEMBER_REMOVED = "TEAM_MEMBER_REMOVED"
    # Roles
    ROLE_CREATED = "ROLE_CREATED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_DELETED = "ROLE_DELETED"
    # API keys
    API_KEY_CREATED = "API_KEY_CREATED"
    API_KEY_REVOKED = "API_KEY_REVOKED"
    # Custom fields
    CUSTOM_FIELD_CREATED = "CUSTOM_FIELD_CREATED"
    CUSTOM_FIELD_UPDATED = "CUSTOM_FIELD_UPDATED"
    CUSTOM_FIELD_DELETED = "CUSTOM_FIELD_DELETED"


class AuditLogEntry(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    # Plain ids, no FKs: entries outlive the rows they describe
    tenant_id = Column(Integer, nullable=True)
    account_id = Column(Integer, nullable=True)
    actor_id = Column(String(100), nullable=False)  # "agent:12", "admin:3", "service:admin-token"
    action_type = Column(String(50), nullable=False)
    target_type = Column(String(50), nullable=True)
    target_id = Column(String(100), nullable=True)
    # Use metadata_ as Python attr to avoid shadowing SQLAlchemy Base.metadata
    metadata_ = Column("metadata", JSON, nullable=True, default=dict)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_audit_tenant_created", "tenant_id", "created_at"),
        Index("idx_audit_account_created", "account_id", "created_at"),
        Index("idx_audit_action", "action_type"),
        Index("idx_audit_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(id={self.id}, action={self.action_type}, target={self.target_id})>"
