"""Schemas for the tenant admin scope (/api/admin)."""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from inboxdesk.schemas.common import CamelModel


class PlanCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    price_cents: int = Field(default=0, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    billing_cycle: str = "monthly"
    status: str = "active"
    is_default: bool = False
    trial_days: int = Field(default=0, ge=0)
    quotas: dict[str, Any] | None = None
    features: dict[str, Any] | None = None
    stripe_product_id: str | None = None
    stripe_price_id: str | None = None


class PlanUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    price_cents: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    billing_cycle: str | None = None
    status: str | None = None
    is_default: bool | None = None
    trial_days: int | None = Field(default=None, ge=0)
    quotas: dict[str, Any] | None = None
    features: dict[str, Any] | None = None
    stripe_product_id: str | None = None
    stripe_price_id: str | None = None


class PlanDelete(CamelModel):
    migrate_to_plan_id: int | None = None


class PlanResponse(CamelModel):
    id: int
    tenant_id: int
    name: str
    description: str | None = None
    price_cents: int
    currency: str
    billing_cycle: str
    status: str
    is_default: bool
    trial_days: int
    quotas: dict[str, Any]
    features: dict[str, Any]
    stripe_product_id: str | None = None
    stripe_price_id: str | None = None
    subscriber_count: int = 0
    created_at: datetime
    updated_at: datetime


class AccountCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr | None = None
    owner_name: str | None = None
    owner_email: EmailStr | None = None
    owner_password: str | None = Field(default=None, min_length=8)
    plan_id: int | None = None


class AccountUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None


class SuspendRequest(CamelModel):
    reason: str | None = None


class AssignPlanRequest(CamelModel):
    plan_id: int


class SettingUpdate(CamelModel):
    value: Any = None
