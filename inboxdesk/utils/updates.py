"""Partial-update helper shared by the resource services."""

from collections.abc import Iterable

from pydantic.alias_generators import to_camel

from inboxdesk.exceptions import ValidationError


def apply_updates(row, updates: dict, fields: Iterable[str] | None = None) -> dict:
    """
    Copy the keys present in `updates` onto `row`.

    `updates` comes from `model_dump(exclude_unset=True)`, so an explicit
    null means "clear this value". That is allowed for nullable columns
    only; a null for a required column is a validation error.

    Args:
        row: ORM instance to modify
        updates: field -> new value
        fields: writable fields; defaults to every mapped column

    Returns:
        field -> {"old", "new"} for the values that actually changed
    """
    columns = row.__table__.columns
    writable = set(fields) if fields is not None else set(columns.keys())

    for field, value in updates.items():
        if field in writable and value is None and not columns[field].nullable:
            raise ValidationError(f"{to_camel(field)} cannot be null", field=to_camel(field))

    changes = {}
    for field, value in updates.items():
        if field not in writable:
            continue
        old = getattr(row, field)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(row, field, value)
    return changes
