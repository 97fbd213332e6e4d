"""
Plan and Subscription models.

Plans are tenant-scoped price/quota/feature bundles; each Account has at most
one Subscription pointing at a Plan of its own tenant.
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from inboxdesk.database import Base, utcnow


class BillingCycle(str, enum.Enum):
    monthly = "monthly"
    yearly = "yearly"
    one_time = "one_time"


class PlanStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    archived = "archived"


class SubscriptionStatus(str, enum.Enum):
    trial = "trial"
    active = "active"
    past_due = "past_due"
    canceled = "canceled"
    expired = "expired"
    suspended = "suspended"


# Statuses that count towards a plan's subscriberCount
COUNTED_SUBSCRIPTION_STATUSES = (SubscriptionStatus.trial.value, SubscriptionStatus.active.value)


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="usd")
    billing_cycle = Column(String(20), nullable=False, default=BillingCycle.monthly.value)
    status = Column(String(20), nullable=False, default=PlanStatus.active.value)
    is_default = Column(Boolean, nullable=False, default=False)
    trial_days = Column(Integer, nullable=False, default=0)
    quotas = Column(JSON, nullable=False, default=dict)
    features = Column(JSON, nullable=False, default=dict)
    stripe_product_id = Column(String(100), nullable=True)
    stripe_price_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship("Tenant", back_populates="plans")

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_plan_tenant_name"),
        Index("idx_plan_tenant_status", "tenant_id", "status"),
    )


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, unique=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.active.value)
    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    trial_ends_at = Column(DateTime, nullable=True)
    canceled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    account = relationship("Account", back_populates="subscription")
    plan = relationship("Plan", lazy="joined")
