"""Schemas for the account scope (/api/account)."""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from inboxdesk.schemas.common import CamelModel


class AccountResponse(CamelModel):
    id: int
    tenant_id: int
    name: str
    email: str | None = None
    status: str
    suspended_reason: str | None = None
    suspended_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PlanSummary(CamelModel):
    id: int
    name: str
    price_cents: int
    currency: str
    billing_cycle: str
    quotas: dict[str, Any]
    features: dict[str, Any]


class SubscriptionResponse(CamelModel):
    id: int
    account_id: int
    plan_id: int
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    trial_ends_at: datetime | None = None
    canceled_at: datetime | None = None
    plan: PlanSummary | None = None


# ============================================================================
# Inboxes
# ============================================================================


class InboxCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    channel_type: str = "whatsapp"
    phone_number: str | None = None
    gateway_token: str | None = None
    settings: dict[str, Any] | None = None


class InboxUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone_number: str | None = None
    gateway_token: str | None = None
    status: str | None = Field(default=None, pattern="^(active|inactive)$")
    settings: dict[str, Any] | None = None


class InboxResponse(CamelModel):
    id: int
    account_id: int
    name: str
    channel_type: str
    phone_number: str | None = None
    status: str
    settings: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class MemberAdd(CamelModel):
    agent_id: int
    role: str | None = None


class InboxMemberResponse(CamelModel):
    id: int
    inbox_id: int
    agent_id: int
    created_at: datetime


# ============================================================================
# Teams
# ============================================================================


class TeamCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class TeamUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None


class TeamResponse(CamelModel):
    id: int
    account_id: int
    name: str
    description: str | None = None
    member_count: int | None = None
    created_at: datetime
    updated_at: datetime


class TeamMemberResponse(CamelModel):
    id: int
    team_id: int
    agent_id: int
    role: str
    joined_at: datetime


# ============================================================================
# Agents
# ============================================================================


class AgentCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=8)
    role: str | None = None
    custom_role_id: int | None = None


class AgentUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)


class AgentRoleUpdate(CamelModel):
    role: str | None = None
    custom_role_id: int | None = None


class AgentResponse(CamelModel):
    id: int
    account_id: int
    name: str
    email: str
    role: str
    custom_role_id: int | None = None
    is_owner: bool
    status: str
    last_login_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Roles
# ============================================================================


class RoleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str]


class RoleUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str] | None = None


class CustomRoleResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    permissions: list[str]
    is_default: bool = False
    created_at: datetime


# ============================================================================
# API keys
# ============================================================================


class ApiKeyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    scopes: list[str] | None = None
    expires_in_days: int | None = None


class ApiKeyResponse(CamelModel):
    id: int
    name: str
    key_prefix: str
    scopes: list[str]
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Custom fields
# ============================================================================


class CustomFieldCreate(CamelModel):
    name: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=200)
    field_type: str
    options: list[str] | None = None
    is_required: bool = False
    is_searchable: bool = True
    display_order: int | None = None
    default_value: str | None = None


class CustomFieldUpdate(CamelModel):
    label: str | None = Field(default=None, min_length=1, max_length=200)
    options: list[str] | None = None
    is_required: bool | None = None
    is_searchable: bool | None = None
    display_order: int | None = None
    default_value: str | None = None


class CustomFieldResponse(CamelModel):
    id: int
    name: str
    label: str
    field_type: str
    options: list[str] | None = None
    is_required: bool
    is_searchable: bool
    display_order: int
    default_value: str | None = None
    created_at: datetime


# ============================================================================
# Jobs & audit
# ============================================================================


class JobResponse(CamelModel):
    id: int
    job_type: str
    status: str
    progress: int
    result: dict[str, Any] | None = None
    error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None


class AuditEntryResponse(CamelModel):
    id: int
    tenant_id: int | None = None
    account_id: int | None = None
    actor_id: str
    action_type: str
    target_type: str | None = None
    target_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
