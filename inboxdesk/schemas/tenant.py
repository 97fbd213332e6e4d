"""Schemas for the superadmin scope (/api/superadmin)."""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from inboxdesk.schemas.common import CamelModel


class TenantCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    subdomain: str
    settings: dict[str, Any] | None = None
    admin_email: EmailStr | None = None
    admin_password: str | None = Field(default=None, min_length=8)
    admin_name: str | None = None


class TenantUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    subdomain: str | None = None
    settings: dict[str, Any] | None = None


class SubdomainCheck(CamelModel):
    subdomain: str


class TenantResponse(CamelModel):
    id: int
    name: str
    subdomain: str
    status: str
    settings: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    metrics: dict[str, Any] | None = None
