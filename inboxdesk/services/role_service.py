"""Custom role management. Default roles are constants, never rows."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import DuplicateResourceError, HasDependentsError, ValidationError
from inboxdesk.models.agent import Agent
from inboxdesk.models.role import CustomRole
from inboxdesk.permissions_config.permissions import AVAILABLE_PERMISSIONS, DEFAULT_ROLES, invalid_permissions
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

DUPLICATE_ROLE_MESSAGE = "A role with this name already exists"


def default_roles() -> list[dict]:
    return [
        {"id": name, "name": name, "description": spec["description"], "isDefault": True, "permissions": spec["permissions"]}
        for name, spec in DEFAULT_ROLES.items()
    ]


def available_permissions() -> list[str]:
    return list(AVAILABLE_PERMISSIONS)


def _check_permissions(permissions: list[str]) -> list[str]:
    if not permissions:
        raise ValidationError("At least one permission is required", field="permissions")
    unknown = invalid_permissions(permissions)
    if unknown:
        raise ValidationError(
            f"Invalid permissions: {', '.join(unknown)}", field="permissions", details={"invalid": unknown}
        )
    # Keep order, drop duplicates
    return list(dict.fromkeys(permissions))


async def list_custom_roles(db: AsyncSession, account_id: int) -> list[CustomRole]:
    result = await db.execute(select(CustomRole).where(CustomRole.account_id == account_id).order_by(CustomRole.name))
    return list(result.scalars().all())


async def _name_taken(db: AsyncSession, account_id: int, name: str, exclude_id: int | None = None) -> bool:
    if name.lower() in DEFAULT_ROLES:
        return True
    stmt = select(CustomRole.id).where(CustomRole.account_id == account_id, func.lower(CustomRole.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(CustomRole.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_custom_role(
    db: AsyncSession, account_id: int, name: str, permissions: list[str], description: str | None = None
) -> CustomRole:
    name = name.strip()
    if await _name_taken(db, account_id, name):
        raise DuplicateResourceError(DUPLICATE_ROLE_MESSAGE, field="name")
    role = CustomRole(
        account_id=account_id, name=name, description=description, permissions=_check_permissions(permissions)
    )
    db.add(role)
    await commit_or_conflict(db, DUPLICATE_ROLE_MESSAGE, field="name")
    await db.refresh(role)
    return role


async def update_custom_role(db: AsyncSession, role: CustomRole, updates: dict) -> CustomRole:
    if updates.get("name") is not None:
        updates["name"] = updates["name"].strip()
        if await _name_taken(db, role.account_id, updates["name"], exclude_id=role.id):
            raise DuplicateResourceError(DUPLICATE_ROLE_MESSAGE, field="name")
    if updates.get("permissions") is not None:
        updates["permissions"] = _check_permissions(updates["permissions"])
    apply_updates(role, updates, ("name", "description", "permissions"))
    await commit_or_conflict(db, DUPLICATE_ROLE_MESSAGE, field="name")
    await db.refresh(role)
    return role


async def delete_custom_role(db: AsyncSession, role: CustomRole) -> None:
    in_use = await db.scalar(select(func.count(Agent.id)).where(Agent.custom_role_id == role.id))
    if in_use:
        raise HasDependentsError(f"Role is assigned to {in_use} agent(s)", dependents=in_use)
    await db.delete(role)
    await db.commit()
