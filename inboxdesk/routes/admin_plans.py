"""
Tenant admin plan routes (/api/admin/plans).

Plans belong to a tenant; a plan id of another tenant is reported as
PLAN_NOT_FOUND.
"""

import logging

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, require_tenant_admin
from inboxdesk.database import get_db
from inboxdesk.exceptions import ErrorCode
from inboxdesk.models.audit_log import AuditAction
from inboxdesk.models.plan import Plan
from inboxdesk.schemas.admin import PlanCreate, PlanDelete, PlanResponse, PlanUpdate
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import plan_service
from inboxdesk.services.container import ServiceContainer, get_services
from inboxdesk.utils.ownership import ResourceGuard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/plans", tags=["Admin Plans"])

plan_guard = ResourceGuard(
    Plan, resource_type="Plan", not_found=ErrorCode.PLAN_NOT_FOUND, scope="tenant", param="plan_id"
)


@router.get("")
async def list_plans(
    status: str | None = None,
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
):
    plans = await plan_service.list_plans(db, caller.tenant_id, status=status)
    return ok([serialize(PlanResponse, plan, subscriber_count=count) for plan, count in plans])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_plan(
    request: Request,
    data: PlanCreate,
    caller: CallerContext = Depends(require_tenant_admin),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    plan = await plan_service.create_plan(db, caller.tenant_id, data.model_dump())
    await services.audit.record(
        request,
        caller,
        AuditAction.PLAN_CREATED,
        "plan",
        plan.id,
        {"name": plan.name, "priceCents": plan.price_cents, "billingCycle": plan.billing_cycle},
        tenant_id=caller.tenant_id,
    )
    return ok(serialize(PlanResponse, plan, subscriber_count=0))


@router.get("/{plan_id}")
async def get_plan(plan: Plan = Depends(plan_guard), db: AsyncSession = Depends(get_db)):
    count = await plan_service.subscriber_count(db, plan.id)
    return ok(serialize(PlanResponse, plan, subscriber_count=count))


@router.put("/{plan_id}")
async def update_plan(
    request: Request,
    data: PlanUpdate,
    caller: CallerContext = Depends(require_tenant_admin),
    plan: Plan = Depends(plan_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    plan, changes = await plan_service.update_plan(db, plan, data.model_dump(exclude_unset=True))
    if changes:
        await services.audit.record(
            request, caller, AuditAction.PLAN_UPDATED, "plan", plan.id, {"changes": changes}, tenant_id=caller.tenant_id
        )
    count = await plan_service.subscriber_count(db, plan.id)
    return ok(serialize(PlanResponse, plan, subscriber_count=count))


@router.delete("/{plan_id}")
async def delete_plan(
    request: Request,
    data: PlanDelete | None = Body(None),
    caller: CallerContext = Depends(require_tenant_admin),
    plan: Plan = Depends(plan_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    """
    Delete a plan. Subscribers must be moved with `migrateToPlanId`,
    otherwise the request fails with 409 and nothing changes.
    """
    target_id = data.migrate_to_plan_id if data else None
    plan_id, name = plan.id, plan.name
    migrated = await plan_service.delete_plan(db, plan, target_id)
    await services.audit.record(
        request,
        caller,
        AuditAction.PLAN_DELETED,
        "plan",
        plan_id,
        {"name": name, "migratedSubscriptions": migrated, "migrateToPlanId": target_id},
        tenant_id=caller.tenant_id,
    )
    return ok({"id": plan_id, "migratedSubscriptions": migrated}, message="Plan deleted")


@router.post("/{plan_id}/sync-stripe")
async def sync_plan_to_stripe(
    request: Request,
    caller: CallerContext = Depends(require_tenant_admin),
    plan: Plan = Depends(plan_guard),
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    result = await services.stripe.sync_plan(plan)
    plan = await plan_service.set_stripe_ids(db, plan, result.product_id, result.price_id)
    await services.audit.record(
        request,
        caller,
        AuditAction.PLAN_STRIPE_SYNCED,
        "plan",
        plan.id,
        {"productId": result.product_id, "priceId": result.price_id, "priceCreated": result.price_created},
        tenant_id=caller.tenant_id,
    )
    count = await plan_service.subscriber_count(db, plan.id)
    return ok(serialize(PlanResponse, plan, subscriber_count=count), message="Plan synced to Stripe")
