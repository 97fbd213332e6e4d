"""
Tenant Service

Async CRUD operations for Tenant entities and tenant-wide settings.
All functions accept an injected AsyncSession.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import hash_password
from inboxdesk.constants import TENANT_SETTING_KEYS, subdomain_error
from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import (
    AlreadyInStateError,
    DuplicateResourceError,
    ErrorCode,
    ResourceNotFoundError,
    ValidationError,
)
from inboxdesk.models.account import Account
from inboxdesk.models.admin_user import AdminRole, AdminUser
from inboxdesk.models.agent import Agent
from inboxdesk.models.inbox import Inbox
from inboxdesk.models.plan import Plan
from inboxdesk.models.tenant import Tenant, TenantStatus
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)


async def get_tenant(db: AsyncSession, tenant_id: int) -> Tenant:
    """Return a Tenant by primary key or raise TENANT_NOT_FOUND."""
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", error_code=ErrorCode.TENANT_NOT_FOUND)
    return tenant


async def get_tenant_by_subdomain(db: AsyncSession, subdomain: str) -> Tenant | None:
    result = await db.execute(select(Tenant).where(Tenant.subdomain == subdomain))
    return result.scalars().first()


async def list_tenants(
    db: AsyncSession,
    params: PaginationParams,
    status: str | None = None,
    search: str | None = None,
) -> Page:
    stmt = select(Tenant)
    if status:
        stmt = stmt.where(Tenant.status == status)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Tenant.name.ilike(pattern), Tenant.subdomain.ilike(pattern)))
    return await paginate(db, stmt.order_by(Tenant.created_at.desc(), Tenant.id.desc()), params)


async def validate_subdomain(db: AsyncSession, subdomain: str, exclude_tenant_id: int | None = None) -> dict:
    """
    Check format, reserved names and availability.

    Returns:
        {"valid": bool, "available": bool, "error": str | None}
    """
    subdomain = (subdomain or "").strip().lower()
    error = subdomain_error(subdomain)
    if error:
        return {"subdomain": subdomain, "valid": False, "available": False, "error": error}

    existing = await get_tenant_by_subdomain(db, subdomain)
    if existing is not None and existing.id != exclude_tenant_id:
        return {"subdomain": subdomain, "valid": True, "available": False, "error": "Subdomain is already taken"}
    return {"subdomain": subdomain, "valid": True, "available": True, "error": None}


async def _ensure_subdomain_usable(db: AsyncSession, subdomain: str, exclude_tenant_id: int | None = None) -> str:
    check = await validate_subdomain(db, subdomain, exclude_tenant_id)
    if not check["valid"]:
        raise ValidationError(check["error"], field="subdomain")
    if not check["available"]:
        raise DuplicateResourceError("A tenant with this subdomain already exists", field="subdomain")
    return check["subdomain"]


async def create_tenant(
    db: AsyncSession,
    name: str,
    subdomain: str,
    settings: dict | None = None,
    admin_email: str | None = None,
    admin_password: str | None = None,
    admin_name: str | None = None,
) -> Tenant:
    """Create a tenant, optionally with its first admin user."""
    if admin_email and not admin_password:
        raise ValidationError("adminPassword is required when adminEmail is given", field="adminPassword")
    subdomain = await _ensure_subdomain_usable(db, subdomain)

    tenant = Tenant(name=name, subdomain=subdomain, status=TenantStatus.active.value, settings=settings or {})
    db.add(tenant)
    await db.flush()

    if admin_email:
        db.add(
            AdminUser(
                tenant_id=tenant.id,
                email=admin_email.lower(),
                name=admin_name,
                password_hash=hash_password(admin_password),
                role=AdminRole.admin.value,
            )
        )

    await commit_or_conflict(db, "A tenant with this subdomain or admin email already exists")
    await db.refresh(tenant)
    logger.info("Tenant created: id=%d subdomain=%s", tenant.id, tenant.subdomain)
    return tenant


async def update_tenant(db: AsyncSession, tenant: Tenant, updates: dict) -> Tenant:
    """
    Apply a partial update to a Tenant.

    Only name, subdomain and settings may change.
    """
    if updates.get("subdomain") is not None and updates["subdomain"] != tenant.subdomain:
        updates["subdomain"] = await _ensure_subdomain_usable(db, updates["subdomain"], exclude_tenant_id=tenant.id)
    apply_updates(tenant, updates, ("name", "subdomain", "settings"))
    await commit_or_conflict(db, "A tenant with this subdomain already exists", field="subdomain")
    await db.refresh(tenant)
    return tenant


async def set_tenant_status(db: AsyncSession, tenant: Tenant, status: TenantStatus) -> Tenant:
    if tenant.status == status.value:
        raise AlreadyInStateError("Tenant", status.value)
    tenant.status = status.value
    await db.commit()
    await db.refresh(tenant)
    logger.info("Tenant %s: id=%d subdomain=%s", status.value, tenant.id, tenant.subdomain)
    return tenant


async def delete_tenant(db: AsyncSession, tenant: Tenant) -> None:
    """Hard-delete a tenant; accounts, plans and admins cascade."""
    tenant_id, subdomain = tenant.id, tenant.subdomain
    await db.delete(tenant)
    await db.commit()
    logger.info("Tenant deleted: id=%d subdomain=%s", tenant_id, subdomain)


async def get_tenant_metrics(db: AsyncSession, tenant_id: int) -> dict:
    accounts = await db.scalar(select(func.count(Account.id)).where(Account.tenant_id == tenant_id))
    agents = await db.scalar(
        select(func.count(Agent.id)).join(Account, Agent.account_id == Account.id).where(Account.tenant_id == tenant_id)
    )
    inboxes = await db.scalar(
        select(func.count(Inbox.id)).join(Account, Inbox.account_id == Account.id).where(Account.tenant_id == tenant_id)
    )
    plans = await db.scalar(select(func.count(Plan.id)).where(Plan.tenant_id == tenant_id))
    return {"accountCount": accounts or 0, "agentCount": agents or 0, "inboxCount": inboxes or 0, "planCount": plans or 0}


# ============================================================================
# Tenant settings
# ============================================================================


def get_settings(tenant: Tenant) -> dict:
    current = tenant.settings or {}
    return {key: current.get(key) for key in sorted(TENANT_SETTING_KEYS)}


async def update_setting(db: AsyncSession, tenant: Tenant, key: str, value) -> tuple:
    """
    Change one tenant setting.

    Returns:
        (old_value, new_value)
    """
    if key not in TENANT_SETTING_KEYS:
        raise ValidationError(f"Unknown setting: {key}", field="key")

    current = dict(tenant.settings or {})
    old_value = current.get(key)
    current[key] = value
    # Reassign so the JSON column is flagged dirty
    tenant.settings = current
    await db.commit()
    await db.refresh(tenant)
    return old_value, value
