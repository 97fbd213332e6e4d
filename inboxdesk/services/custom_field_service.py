"""Custom field definitions for contacts."""

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import DuplicateResourceError, ValidationError
from inboxdesk.models.custom_field import CustomField, FieldType
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

FIELD_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
DUPLICATE_FIELD_MESSAGE = "A custom field with this name already exists"
UPDATABLE_FIELDS = {"label", "options", "is_required", "is_searchable", "display_order", "default_value"}


def _check_options(field_type: str, options) -> None:
    if field_type == FieldType.dropdown.value:
        if not options or not isinstance(options, list) or not all(isinstance(o, str) and o for o in options):
            raise ValidationError("Dropdown fields require a non-empty list of options", field="options")


async def list_fields(db: AsyncSession, account_id: int) -> list[CustomField]:
    result = await db.execute(
        select(CustomField)
        .where(CustomField.account_id == account_id)
        .order_by(CustomField.display_order, CustomField.id)
    )
    return list(result.scalars().all())


async def create_field(db: AsyncSession, account_id: int, data: dict) -> CustomField:
    name = data["name"]
    field_type = data["field_type"]
    if field_type not in {t.value for t in FieldType}:
        raise ValidationError(f"Invalid field type: {field_type}", field="fieldType")
    if not FIELD_NAME_PATTERN.match(name):
        raise ValidationError(
            "Field name must start with a lowercase letter and contain only lowercase letters, digits and underscores",
            field="name",
        )
    _check_options(field_type, data.get("options"))

    taken = await db.execute(select(CustomField.id).where(CustomField.account_id == account_id, CustomField.name == name))
    if taken.first() is not None:
        raise DuplicateResourceError(DUPLICATE_FIELD_MESSAGE, field="name")

    display_order = data.get("display_order")
    if display_order is None:
        current_max = await db.scalar(
            select(func.max(CustomField.display_order)).where(CustomField.account_id == account_id)
        )
        display_order = (current_max or 0) + 1

    field = CustomField(
        account_id=account_id,
        name=name,
        label=data["label"],
        field_type=field_type,
        options=data.get("options"),
        is_required=bool(data.get("is_required")),
        is_searchable=data.get("is_searchable", True) is not False,
        display_order=display_order,
        default_value=data.get("default_value"),
    )
    db.add(field)
    await commit_or_conflict(db, DUPLICATE_FIELD_MESSAGE, field="name")
    await db.refresh(field)
    return field


async def update_field(db: AsyncSession, field: CustomField, updates: dict) -> CustomField:
    """Name and type are immutable once created."""
    if "options" in updates:
        _check_options(field.field_type, updates["options"])
    apply_updates(field, updates, UPDATABLE_FIELDS)
    await db.commit()
    await db.refresh(field)
    return field


async def delete_field(db: AsyncSession, field: CustomField) -> None:
    await db.delete(field)
    await db.commit()
