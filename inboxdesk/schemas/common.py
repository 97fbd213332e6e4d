"""
Shared response envelope and base schema.

Every successful response is `{"success": true, "data": ..., "message"?,
"pagination"?}`; errors are rendered by `inboxdesk.exception_handlers`.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        # min_length applies to the stripped value
        str_strip_whitespace=True,
    )


class Pagination(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class ConfirmDelete(CamelModel):
    """Body required by destructive deletes."""

    confirm: str | None = None


def ok(data: Any = None, message: str | None = None, pagination: Pagination | None = None) -> dict:
    """Build a success envelope; `None` fields are dropped."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination.model_dump(by_alias=True)
    return body


def serialize(schema: type[BaseModel], obj: Any, **extra) -> dict:
    """Validate an ORM object into `schema` and dump it camelCased."""
    model = schema.model_validate(obj)
    if extra:
        model = model.model_copy(update=extra)
    return model.model_dump(by_alias=True, mode="json")
