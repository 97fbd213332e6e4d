"""Read-only status over background jobs."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.models.job import Job
from inboxdesk.utils.pagination import Page, PaginationParams, paginate


async def list_jobs(
    db: AsyncSession,
    account_id: int,
    params: PaginationParams,
    status: str | None = None,
    job_type: str | None = None,
) -> Page:
    stmt = select(Job).where(Job.account_id == account_id)
    if status:
        stmt = stmt.where(Job.status == status)
    if job_type:
        stmt = stmt.where(Job.job_type == job_type)
    return await paginate(db, stmt.order_by(Job.created_at.desc(), Job.id.desc()), params)
