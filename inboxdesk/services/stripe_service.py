"""
Stripe Service

Keeps a Plan's Stripe Product and Price in step with its name, price and
billing cycle. The stripe SDK is synchronous, so calls run in Starlette's
threadpool.
"""

import logging
from dataclasses import dataclass

import stripe
from starlette.concurrency import run_in_threadpool

from inboxdesk.exceptions import ErrorCode, UpstreamError
from inboxdesk.models.plan import BillingCycle, Plan

logger = logging.getLogger(__name__)

RECURRING_INTERVALS = {
    BillingCycle.monthly.value: "month",
    BillingCycle.yearly.value: "year",
}


@dataclass
class StripeSyncResult:
    product_id: str
    price_id: str
    price_created: bool


class StripeGateway:
    def __init__(self, api_key: str | None, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def sync_plan(self, plan: Plan) -> StripeSyncResult:
        """
        Create or update the Product for `plan`; create a new Price when the
        amount, currency or billing cycle no longer match the current one.

        Raises:
            UpstreamError: Stripe is not configured or the API call failed
        """
        if not self.configured:
            raise UpstreamError(
                "Stripe is not configured", service="stripe", error_code=ErrorCode.STRIPE_NOT_CONFIGURED
            )
        try:
            return await run_in_threadpool(self._sync_plan, plan)
        except stripe.StripeError as e:
            logger.error(f"Stripe sync failed for plan {plan.id}: {e.user_message or str(e)}")
            raise UpstreamError(f"Stripe request failed: {e.user_message or str(e)}", service="stripe") from e

    def _sync_plan(self, plan: Plan) -> StripeSyncResult:
        metadata = {"tenant_id": str(plan.tenant_id), "plan_id": str(plan.id)}
        description = plan.description or f"{plan.name} plan"

        if plan.stripe_product_id:
            product = stripe.Product.modify(
                plan.stripe_product_id,
                name=plan.name,
                description=description,
                metadata=metadata,
                api_key=self.api_key,
            )
        else:
            product = stripe.Product.create(
                name=plan.name,
                description=description,
                metadata=metadata,
                api_key=self.api_key,
                idempotency_key=f"plan_product_{plan.id}",
            )

        interval = RECURRING_INTERVALS.get(plan.billing_cycle)
        currency = (plan.currency or self.currency).lower()

        if plan.stripe_price_id:
            current = stripe.Price.retrieve(plan.stripe_price_id, api_key=self.api_key)
            current_interval = current.recurring.interval if current.recurring else None
            if (
                current.unit_amount == plan.price_cents
                and current.currency == currency
                and current_interval == interval
            ):
                return StripeSyncResult(product_id=product.id, price_id=current.id, price_created=False)

        price_params = {
            "product": product.id,
            "unit_amount": plan.price_cents,
            "currency": currency,
            "metadata": metadata,
            "api_key": self.api_key,
        }
        if interval:
            price_params["recurring"] = {"interval": interval}
        price = stripe.Price.create(**price_params)

        # Prices are immutable in Stripe; retire the superseded one
        if plan.stripe_price_id:
            stripe.Price.modify(plan.stripe_price_id, active=False, api_key=self.api_key)

        logger.info(f"Plan {plan.id} synced to Stripe: product={product.id} price={price.id}")
        return StripeSyncResult(product_id=product.id, price_id=price.id, price_created=True)
