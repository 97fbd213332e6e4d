"""
Tenant-scoped resource guard.

A single reusable dependency replaces per-route ownership checks:

    inbox_guard = ResourceGuard(
        Inbox, resource_type="Inbox", not_found=ErrorCode.INBOX_NOT_FOUND, param="inbox_id"
    )

    @router.get("/inboxes/{inbox_id}")
    async def get_inbox(inbox: Inbox = Depends(inbox_guard)):
        ...

The row is fetched by primary key, then its owner (``account_id`` for
account scope, ``tenant_id`` for tenant scope) is compared with the caller.
A foreign row is reported exactly like a missing one.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, get_caller_context, require_agent, require_tenant_admin
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode, ResourceNotFoundError, TenantMismatchError

logger = logging.getLogger(__name__)

Scope = Literal["account", "tenant"]
Loader = Callable[[AsyncSession, int], Awaitable[Any]]


def parse_resource_id(raw: Any) -> int | None:
    """Path ids are integers; anything else can never match a row."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


class ResourceGuard:
    def __init__(
        self,
        model,
        *,
        resource_type: str,
        not_found: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        scope: Scope = "account",
        param: str = "id",
        loader: Loader | None = None,
        owner_of: Callable[[Any], Any] | None = None,
    ):
        self.model = model
        self.resource_type = resource_type
        self.not_found = not_found
        self.scope = scope
        self.param = param
        self.loader = loader
        self.owner_of = owner_of or self._default_owner

    def _default_owner(self, row: Any) -> Any:
        return getattr(row, "account_id" if self.scope == "account" else "tenant_id")

    def _expected_owner(self, caller: CallerContext) -> Any:
        return caller.account_id if self.scope == "account" else caller.tenant_id

    async def _load(self, db: AsyncSession, resource_id: int) -> Any:
        if self.loader is not None:
            return await self.loader(db, resource_id)
        return await db.get(self.model, resource_id)

    async def verify_ownership(self, raw_id: Any, caller: CallerContext, db: AsyncSession) -> Any:
        """Return the row owned by the caller or raise a 404-class error."""
        resource_id = parse_resource_id(raw_id)
        if resource_id is None:
            raise ResourceNotFoundError(self.resource_type, error_code=self.not_found)

        row = await self._load(db, resource_id)
        if row is None:
            raise ResourceNotFoundError(self.resource_type, error_code=self.not_found)

        owner_id = self.owner_of(row)
        expected = self._expected_owner(caller)
        if owner_id != expected:
            logger.warning(
                f"Blocked cross-{self.scope} access to {self.resource_type} {resource_id}",
                extra={
                    "type": "security_violation",
                    "resource_type": self.resource_type,
                    "resource_id": resource_id,
                    "owner_id": owner_id,
                    "caller_owner_id": expected,
                    "actor": caller.actor_id,
                },
            )
            raise TenantMismatchError(self.resource_type, error_code=self.not_found, owner_id=owner_id)

        return row

    async def __call__(
        self,
        request: Request,
        caller: CallerContext = Depends(get_caller_context),
        db: AsyncSession = Depends(get_db),
    ) -> Any:
        if self.scope == "tenant":
            caller = await require_tenant_admin(request, caller)
        else:
            caller = await require_agent(caller)
        return await self.verify_ownership(request.path_params.get(self.param), caller, db)
