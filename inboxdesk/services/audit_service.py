"""
Audit Service

`AuditRecorder` appends immutable audit rows for privileged state changes.
Writes happen in their own session after the primary operation committed,
so a failing audit write is logged and never undoes or blocks the request.

The query/export functions below back the audit endpoints of the account
and admin scopes.
"""

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Any

from fastapi import Request
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inboxdesk.database import utcnow
from inboxdesk.exceptions import ValidationError
from inboxdesk.middleware.logging import get_client_ip
from inboxdesk.models.audit_log import AuditAction, AuditLogEntry
from inboxdesk.utils.pagination import Page, PaginationParams, paginate
from inboxdesk.utils.security import sanitize_csv_field

logger = logging.getLogger(__name__)

MAX_EXPORT_ROWS = 10000
EXPORT_FORMATS = ("csv", "json")
CSV_COLUMNS = [
    "id",
    "created_at",
    "actor_id",
    "action_type",
    "target_type",
    "target_id",
    "tenant_id",
    "account_id",
    "ip_address",
    "user_agent",
    "metadata",
]


class AuditRecorder:
    """Best-effort writer for AuditLogEntry rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def log_action(
        self,
        actor_id: str,
        action_type: AuditAction,
        target_id: Any = None,
        metadata: dict | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        *,
        target_type: str | None = None,
        tenant_id: int | None = None,
        account_id: int | None = None,
    ) -> None:
        """Append one audit row. Never raises."""
        try:
            async with self.session_factory() as session:
                session.add(
                    AuditLogEntry(
                        tenant_id=tenant_id,
                        account_id=account_id,
                        actor_id=actor_id,
                        action_type=AuditAction(action_type).value,
                        target_type=target_type,
                        target_id=str(target_id) if target_id is not None else None,
                        metadata_=metadata or {},
                        ip_address=ip,
                        user_agent=user_agent,
                        created_at=utcnow(),
                    )
                )
                await session.commit()
        except Exception as e:
            logger.error(
                f"Failed to write audit log entry: {str(e)}",
                extra={"actor": actor_id, "action_type": str(action_type), "target_id": target_id},
            )

    async def record(
        self,
        request: Request,
        caller,
        action_type: AuditAction,
        target_type: str,
        target_id: Any,
        metadata: dict | None = None,
        *,
        tenant_id: int | None = None,
        account_id: int | None = None,
    ) -> None:
        """`log_action` with actor, ip and user agent taken from the request."""
        await self.log_action(
            caller.actor_id,
            action_type,
            target_id,
            metadata,
            ip=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
            target_type=target_type,
            tenant_id=tenant_id if tenant_id is not None else caller.tenant_id,
            account_id=account_id if account_id is not None else caller.account_id,
        )


@dataclass
class AuditFilters:
    action_type: str | None = None
    actor_id: str | None = None
    target_id: str | None = None
    target_type: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def build_audit_query(
    filters: AuditFilters,
    tenant_id: int | None = None,
    account_id: int | None = None,
) -> Select:
    """Scoped, filtered query, newest first."""
    stmt = select(AuditLogEntry)
    if tenant_id is not None:
        stmt = stmt.where(AuditLogEntry.tenant_id == tenant_id)
    if account_id is not None:
        stmt = stmt.where(AuditLogEntry.account_id == account_id)

    if filters.action_type:
        stmt = stmt.where(AuditLogEntry.action_type == filters.action_type)
    if filters.actor_id:
        stmt = stmt.where(AuditLogEntry.actor_id == filters.actor_id)
    if filters.target_id:
        stmt = stmt.where(AuditLogEntry.target_id == filters.target_id)
    if filters.target_type:
        stmt = stmt.where(AuditLogEntry.target_type == filters.target_type)
    if filters.start_date:
        stmt = stmt.where(AuditLogEntry.created_at >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(AuditLogEntry.created_at <= filters.end_date)

    return stmt.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())


async def list_entries(
    db: AsyncSession,
    filters: AuditFilters,
    params: PaginationParams,
    tenant_id: int | None = None,
    account_id: int | None = None,
) -> Page:
    return await paginate(db, build_audit_query(filters, tenant_id, account_id), params)


def entry_to_dict(entry: AuditLogEntry) -> dict:
    return {
        "id": entry.id,
        "tenantId": entry.tenant_id,
        "accountId": entry.account_id,
        "actorId": entry.actor_id,
        "actionType": entry.action_type,
        "targetType": entry.target_type,
        "targetId": entry.target_id,
        "metadata": entry.metadata_ or {},
        "ipAddress": entry.ip_address,
        "userAgent": entry.user_agent,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
    }


async def export_entries(
    db: AsyncSession,
    filters: AuditFilters,
    export_format: str = "csv",
    tenant_id: int | None = None,
    account_id: int | None = None,
) -> tuple[str, str, str]:
    """
    Render matching entries for download.

    Returns:
        (content, media_type, filename)
    """
    if export_format not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {export_format}", field="format")

    stmt = build_audit_query(filters, tenant_id, account_id).limit(MAX_EXPORT_ROWS)
    entries = list((await db.execute(stmt)).scalars().all())
    filename = f"audit-log-{utcnow().date().isoformat()}.{export_format}"

    if export_format == "json":
        return json.dumps([entry_to_dict(e) for e in entries], default=str), "application/json", filename

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        writer.writerow(
            [
                entry.id,
                entry.created_at.isoformat() if entry.created_at else "",
                sanitize_csv_field(entry.actor_id),
                entry.action_type,
                sanitize_csv_field(entry.target_type),
                sanitize_csv_field(entry.target_id),
                entry.tenant_id if entry.tenant_id is not None else "",
                entry.account_id if entry.account_id is not None else "",
                sanitize_csv_field(entry.ip_address),
                sanitize_csv_field(entry.user_agent),
                sanitize_csv_field(json.dumps(entry.metadata_ or {}, default=str)),
            ]
        )

    logger.info(f"Exported {len(entries)} audit entries as csv")
    return output.getvalue(), "text/csv", filename
