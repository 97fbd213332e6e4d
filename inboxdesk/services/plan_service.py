"""
Plan Service

Tenant-scoped subscription plans. Quotas and features are stored merged
over the platform defaults, so every plan always carries a full set.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.constants import DEFAULT_FEATURES, DEFAULT_QUOTAS, VALID_FEATURES
from inboxdesk.database import commit_or_conflict
from inboxdesk.exceptions import (
    DuplicateResourceError,
    ErrorCode,
    HasDependentsError,
    ResourceNotFoundError,
    TenantMismatchError,
    ValidationError,
)
from inboxdesk.models.plan import COUNTED_SUBSCRIPTION_STATUSES, BillingCycle, Plan, PlanStatus, Subscription
from inboxdesk.utils.updates import apply_updates

logger = logging.getLogger(__name__)

DUPLICATE_PLAN_MESSAGE = "A plan with this name already exists"
UPDATABLE_FIELDS = {
    "name",
    "description",
    "price_cents",
    "currency",
    "billing_cycle",
    "status",
    "is_default",
    "trial_days",
    "quotas",
    "features",
    "stripe_product_id",
    "stripe_price_id",
}


def normalize_quotas(quotas: dict | None, base: dict | None = None) -> dict:
    """Merge `quotas` over `base` (or the defaults); values are non-negative ints."""
    merged = dict(DEFAULT_QUOTAS)
    merged.update(base or {})
    for key, value in (quotas or {}).items():
        if key not in DEFAULT_QUOTAS:
            raise ValidationError(f"Unknown quota: {key}", field="quotas")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Quota {key} must be a non-negative integer", field="quotas")
        merged[key] = value
    return merged


def normalize_features(features: dict | None, base: dict | None = None) -> dict:
    merged = dict(DEFAULT_FEATURES)
    merged.update(base or {})
    for key, value in (features or {}).items():
        if key not in VALID_FEATURES:
            raise ValidationError(f"Invalid feature: {key}", field="features")
        merged[key] = bool(value)
    return merged


def _validate_enums(data: dict) -> None:
    if "billing_cycle" in data and data["billing_cycle"] not in {c.value for c in BillingCycle}:
        raise ValidationError("billingCycle must be monthly, yearly or one_time", field="billingCycle")
    if "status" in data and data["status"] not in {s.value for s in PlanStatus}:
        raise ValidationError("status must be active, inactive or archived", field="status")


async def subscriber_counts(db: AsyncSession, plan_ids: list[int]) -> dict[int, int]:
    """Trial and active subscriptions per plan."""
    if not plan_ids:
        return {}
    result = await db.execute(
        select(Subscription.plan_id, func.count(Subscription.id))
        .where(Subscription.plan_id.in_(plan_ids))
        .where(Subscription.status.in_(COUNTED_SUBSCRIPTION_STATUSES))
        .group_by(Subscription.plan_id)
    )
    return {plan_id: count for plan_id, count in result.all()}


async def subscriber_count(db: AsyncSession, plan_id: int) -> int:
    return (await subscriber_counts(db, [plan_id])).get(plan_id, 0)


async def list_plans(db: AsyncSession, tenant_id: int, status: str | None = None) -> list[tuple[Plan, int]]:
    stmt = select(Plan).where(Plan.tenant_id == tenant_id)
    if status:
        stmt = stmt.where(Plan.status == status)
    plans = list((await db.execute(stmt.order_by(Plan.price_cents, Plan.id))).scalars().all())
    counts = await subscriber_counts(db, [p.id for p in plans])
    return [(plan, counts.get(plan.id, 0)) for plan in plans]


async def get_tenant_plan(db: AsyncSession, tenant_id: int, plan_id: int) -> Plan:
    """Plan by id, scoped to the tenant; foreign plans look missing."""
    plan = await db.get(Plan, plan_id)
    if plan is None:
        raise ResourceNotFoundError("Plan", error_code=ErrorCode.PLAN_NOT_FOUND)
    if plan.tenant_id != tenant_id:
        raise TenantMismatchError("Plan", error_code=ErrorCode.PLAN_NOT_FOUND, owner_id=plan.tenant_id)
    return plan


async def _name_taken(db: AsyncSession, tenant_id: int, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Plan.id).where(Plan.tenant_id == tenant_id, func.lower(Plan.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Plan.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def _clear_default(db: AsyncSession, tenant_id: int, keep_id: int | None = None) -> None:
    stmt = update(Plan).where(Plan.tenant_id == tenant_id, Plan.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Plan.id != keep_id)
    await db.execute(stmt.values(is_default=False))


async def create_plan(db: AsyncSession, tenant_id: int, data: dict) -> Plan:
    """
    Create a plan for the tenant.

    Raises:
        DuplicateResourceError: a plan with the same name exists in the tenant
        ValidationError: bad enum, quota or feature values
    """
    _validate_enums(data)
    name = data["name"].strip()
    if await _name_taken(db, tenant_id, name):
        raise DuplicateResourceError(DUPLICATE_PLAN_MESSAGE, field="name")

    plan = Plan(
        tenant_id=tenant_id,
        name=name,
        description=data.get("description"),
        price_cents=data.get("price_cents", 0),
        currency=(data.get("currency") or "usd").lower(),
        billing_cycle=data.get("billing_cycle") or BillingCycle.monthly.value,
        status=data.get("status") or PlanStatus.active.value,
        is_default=bool(data.get("is_default")),
        trial_days=data.get("trial_days") or 0,
        quotas=normalize_quotas(data.get("quotas")),
        features=normalize_features(data.get("features")),
        stripe_product_id=data.get("stripe_product_id"),
        stripe_price_id=data.get("stripe_price_id"),
    )
    if plan.is_default:
        await _clear_default(db, tenant_id)
    db.add(plan)
    await commit_or_conflict(db, DUPLICATE_PLAN_MESSAGE, field="name")
    await db.refresh(plan)
    logger.info("Plan created: id=%d tenant_id=%d name=%s", plan.id, tenant_id, plan.name)
    return plan


async def update_plan(db: AsyncSession, plan: Plan, data: dict) -> tuple[Plan, dict]:
    """
    Apply a partial update.

    Returns:
        (plan, changes) where changes maps field -> {"old", "new"}
    """
    _validate_enums(data)
    if data.get("name") is not None:
        data["name"] = data["name"].strip()
        if data["name"].lower() != plan.name.lower() and await _name_taken(db, plan.tenant_id, data["name"], plan.id):
            raise DuplicateResourceError(DUPLICATE_PLAN_MESSAGE, field="name")
    if "quotas" in data:
        data["quotas"] = normalize_quotas(data["quotas"], base=plan.quotas)
    if "features" in data:
        data["features"] = normalize_features(data["features"], base=plan.features)

    changes = apply_updates(plan, data, UPDATABLE_FIELDS)

    if data.get("is_default"):
        await _clear_default(db, plan.tenant_id, keep_id=plan.id)
    await commit_or_conflict(db, DUPLICATE_PLAN_MESSAGE, field="name")
    await db.refresh(plan)
    return plan, changes


async def delete_plan(db: AsyncSession, plan: Plan, migrate_to_plan_id: int | None = None) -> int:
    """
    Delete a plan, optionally moving its subscriptions to another plan of
    the same tenant first.

    Returns:
        number of subscriptions migrated

    Raises:
        HasDependentsError: the plan has subscribers and no migration target
        ValidationError: the migration target is unknown, foreign or the plan itself
    """
    count = await subscriber_count(db, plan.id)
    if count > 0 and migrate_to_plan_id is None:
        raise HasDependentsError(
            f"Plan has {count} active subscriber(s). Provide migrateToPlanId to move them first.",
            dependents=count,
        )

    migrated = 0
    if migrate_to_plan_id is not None:
        if migrate_to_plan_id == plan.id:
            raise ValidationError("Cannot migrate subscribers to the plan being deleted", field="migrateToPlanId")
        target = await db.get(Plan, migrate_to_plan_id)
        if target is None or target.tenant_id != plan.tenant_id:
            raise ValidationError("Migration target plan not found", field="migrateToPlanId")
        result = await db.execute(
            update(Subscription).where(Subscription.plan_id == plan.id).values(plan_id=target.id)
        )
        migrated = result.rowcount or 0
    elif await db.scalar(select(func.count(Subscription.id)).where(Subscription.plan_id == plan.id)):
        # Canceled/expired subscriptions still reference the plan
        raise HasDependentsError(
            "Plan is referenced by past subscriptions. Provide migrateToPlanId to move them first.",
            dependents=0,
        )

    plan_id = plan.id
    await db.delete(plan)
    await db.commit()
    logger.info("Plan deleted: id=%d migrated=%d", plan_id, migrated)
    return migrated


async def set_stripe_ids(db: AsyncSession, plan: Plan, product_id: str, price_id: str) -> Plan:
    plan.stripe_product_id = product_id
    plan.stripe_price_id = price_id
    await db.commit()
    await db.refresh(plan)
    return plan
