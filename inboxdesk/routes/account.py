"""
Account scope routes: the caller's own account, subscription, background
jobs and audit trail.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, require_agent
from inboxdesk.database import as_naive_utc, get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.job import Job
from inboxdesk.permissions_config.permission_dependencies import permission_required
from inboxdesk.schemas.account import AccountResponse, AuditEntryResponse, JobResponse, SubscriptionResponse
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import account_service, audit_service, job_service, subscription_service
from inboxdesk.services.audit_service import AuditFilters
from inboxdesk.utils.ownership import ResourceGuard
from inboxdesk.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/account", tags=["Account"])

job_guard = ResourceGuard(Job, resource_type="Job", not_found=ErrorCode.JOB_NOT_FOUND, param="job_id")


def audit_filters(
    action_type: str | None = Query(None, alias="actionType"),
    actor_id: str | None = Query(None, alias="actorId"),
    target_id: str | None = Query(None, alias="targetId"),
    target_type: str | None = Query(None, alias="targetType"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> AuditFilters:
    return AuditFilters(
        action_type=action_type,
        actor_id=actor_id,
        target_id=target_id,
        target_type=target_type,
        start_date=as_naive_utc(start_date),
        end_date=as_naive_utc(end_date),
    )


@router.get("/account")
async def get_my_account(caller: CallerContext = Depends(require_agent), db: AsyncSession = Depends(get_db)):
    account = await account_service.get_account(db, caller.account_id)
    return ok(serialize(AccountResponse, account))


@router.get("/subscription")
async def get_my_subscription(caller: CallerContext = Depends(require_agent), db: AsyncSession = Depends(get_db)):
    subscription = await subscription_service.get_account_subscription(db, caller.account_id)
    return ok(serialize(SubscriptionResponse, subscription) if subscription else None)


# ============================================================================
# Jobs
# ============================================================================


@router.get("/jobs")
async def list_jobs(
    status: str | None = None,
    job_type: str | None = Query(None, alias="jobType"),
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(permission_required("reports:view")),
    db: AsyncSession = Depends(get_db),
):
    page = await job_service.list_jobs(db, caller.account_id, pagination, status=status, job_type=job_type)
    return ok([serialize(JobResponse, job) for job in page.items], pagination=page.pagination)


@router.get("/jobs/{job_id}")
async def get_job(
    caller: CallerContext = Depends(permission_required("reports:view")),
    job: Job = Depends(job_guard),
):
    return ok(serialize(JobResponse, job))


# ============================================================================
# Audit
# ============================================================================


@router.get("/audit")
async def list_audit_entries(
    filters: AuditFilters = Depends(audit_filters),
    pagination: PaginationParams = Depends(),
    caller: CallerContext = Depends(permission_required("reports:view")),
    db: AsyncSession = Depends(get_db),
):
    page = await audit_service.list_entries(db, filters, pagination, account_id=caller.account_id)
    return ok([serialize(AuditEntryResponse, e) for e in page.items], pagination=page.pagination)


@router.get("/audit/export")
async def export_audit_entries(
    export_format: str = Query("csv", alias="format"),
    filters: AuditFilters = Depends(audit_filters),
    caller: CallerContext = Depends(permission_required("reports:view")),
    db: AsyncSession = Depends(get_db),
):
    content, media_type, filename = await audit_service.export_entries(
        db, filters, export_format, account_id=caller.account_id
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
