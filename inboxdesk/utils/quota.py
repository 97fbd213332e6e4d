"""
Plan quota enforcement.

`quota_required` runs before a create route body and refuses the request
with 403 QUOTA_EXCEEDED when the account already holds as many rows as its
plan allows.
"""

import logging

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext
from inboxdesk.database import get_db
from inboxdesk.exceptions import QuotaExceededError
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.services import subscription_service

logger = logging.getLogger(__name__)


async def check_quota(db: AsyncSession, account_id: int, quota: str, model, *filters) -> None:
    quotas = await subscription_service.get_effective_quotas(db, account_id)
    limit = quotas.get(quota)
    if limit is None:
        return

    current = await db.scalar(select(func.count(model.id)).where(model.account_id == account_id, *filters))
    if current >= limit:
        logger.info(f"Quota {quota} reached for account {account_id}: {current}/{limit}")
        raise QuotaExceededError(quota, limit=limit, current=current)


def quota_required(permission: str, quota: str, model, *filters):
    """Dependency factory: permission check followed by the quota check."""

    async def checker(
        caller: CallerContext = Depends(permission_required(permission)),
        db: AsyncSession = Depends(get_db),
    ) -> CallerContext:
        await check_quota(db, caller.account_id, quota, model, *filters)
        return caller

    return checker
