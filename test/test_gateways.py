"""
Unit tests for the external gateways (WhatsApp over httpx, Stripe SDK)
"""

from types import SimpleNamespace

import pytest
import stripe

from inboxdesk.exceptions import ErrorCode, UpstreamError
from inboxdesk.models.inbox import Inbox
from inboxdesk.models.plan import Plan
from inboxdesk.services.stripe_service import StripeGateway
from inboxdesk.services.whatsapp_service import WhatsAppGateway
from utils.mocks import failing_transport, gateway_transport


def _inbox(token="wa-token"):
    return Inbox(id=7, account_id=1, name="Support", gateway_token=token)


def _plan(**overrides):
    values = dict(
        id=3,
        tenant_id=1,
        name="Pro",
        description=None,
        price_cents=4900,
        currency="usd",
        billing_cycle="monthly",
        stripe_product_id=None,
        stripe_price_id=None,
    )
    values.update(overrides)
    return Plan(**values)


class TestWhatsAppGateway:
    @pytest.mark.parametrize(
        "payload,status",
        [
            ({"data": {"Connected": True, "LoggedIn": True}}, "connected"),
            ({"connected": True, "loggedIn": False}, "disconnected"),
            ({}, "disconnected"),
        ],
    )
    async def test_status_payloads(self, payload, status):
        gateway = WhatsAppGateway("http://gateway.test/", transport=gateway_transport(payload))
        result = await gateway.get_session_status(_inbox())
        assert result["status"] == status

    async def test_no_token_skips_gateway(self):
        seen = []
        gateway = WhatsAppGateway("http://gateway.test", transport=gateway_transport({}, seen=seen))
        result = await gateway.get_session_status(_inbox(token=None))
        assert result["status"] == "not_configured"
        assert seen == []

    async def test_error_status(self):
        gateway = WhatsAppGateway("http://gateway.test", transport=gateway_transport({"error": "bad token"}, 401))
        with pytest.raises(UpstreamError) as exc_info:
            await gateway.get_session_status(_inbox())
        assert exc_info.value.error_code == ErrorCode.GATEWAY_ERROR
        assert exc_info.value.status_code == 502

    async def test_unreachable(self):
        gateway = WhatsAppGateway("http://gateway.test", transport=failing_transport())
        with pytest.raises(UpstreamError, match="unavailable"):
            await gateway.get_session_status(_inbox())


class FakeStripe:
    """Records SDK calls made through monkeypatched stripe resources"""

    def __init__(self, current_price=None, fail=False):
        self.calls = []
        self.current_price = current_price
        self.fail = fail

    def product_create(self, **kwargs):
        if self.fail:
            raise stripe.APIConnectionError("network down")
        self.calls.append(("Product.create", kwargs))
        return SimpleNamespace(id="prod_new")

    def product_modify(self, product_id, **kwargs):
        self.calls.append(("Product.modify", product_id))
        return SimpleNamespace(id=product_id)

    def price_create(self, **kwargs):
        self.calls.append(("Price.create", kwargs))
        return SimpleNamespace(id="price_new")

    def price_retrieve(self, price_id, **kwargs):
        self.calls.append(("Price.retrieve", price_id))
        return self.current_price

    def price_modify(self, price_id, **kwargs):
        self.calls.append(("Price.modify", price_id, kwargs.get("active")))
        return SimpleNamespace(id=price_id)


@pytest.fixture
def fake_stripe(monkeypatch):
    def install(**kwargs):
        fake = FakeStripe(**kwargs)
        monkeypatch.setattr(stripe.Product, "create", fake.product_create)
        monkeypatch.setattr(stripe.Product, "modify", fake.product_modify)
        monkeypatch.setattr(stripe.Price, "create", fake.price_create)
        monkeypatch.setattr(stripe.Price, "retrieve", fake.price_retrieve)
        monkeypatch.setattr(stripe.Price, "modify", fake.price_modify)
        return fake

    return install


class TestStripeGateway:
    async def test_not_configured(self):
        with pytest.raises(UpstreamError) as exc_info:
            await StripeGateway(None).sync_plan(_plan())
        assert exc_info.value.error_code == ErrorCode.STRIPE_NOT_CONFIGURED

    async def test_first_sync_creates_product_and_price(self, fake_stripe):
        fake = fake_stripe()
        result = await StripeGateway("sk_test_123").sync_plan(_plan())

        assert (result.product_id, result.price_id, result.price_created) == ("prod_new", "price_new", True)
        price_call = next(kwargs for name, kwargs in fake.calls if name == "Price.create")
        assert price_call["unit_amount"] == 4900
        assert price_call["recurring"] == {"interval": "month"}
        assert price_call["metadata"] == {"tenant_id": "1", "plan_id": "3"}

    async def test_one_time_plan_has_no_interval(self, fake_stripe):
        fake = fake_stripe()
        await StripeGateway("sk_test_123").sync_plan(_plan(billing_cycle="one_time"))
        price_call = next(kwargs for name, kwargs in fake.calls if name == "Price.create")
        assert "recurring" not in price_call

    async def test_matching_price_is_reused(self, fake_stripe):
        current = SimpleNamespace(
            id="price_old", unit_amount=4900, currency="usd", recurring=SimpleNamespace(interval="month")
        )
        fake = fake_stripe(current_price=current)
        result = await StripeGateway("sk_test_123").sync_plan(
            _plan(stripe_product_id="prod_old", stripe_price_id="price_old")
        )

        assert (result.product_id, result.price_id, result.price_created) == ("prod_old", "price_old", False)
        assert [c[0] for c in fake.calls] == ["Product.modify", "Price.retrieve"]

    async def test_changed_price_replaces_old_one(self, fake_stripe):
        current = SimpleNamespace(
            id="price_old", unit_amount=2900, currency="usd", recurring=SimpleNamespace(interval="month")
        )
        fake = fake_stripe(current_price=current)
        result = await StripeGateway("sk_test_123").sync_plan(
            _plan(stripe_product_id="prod_old", stripe_price_id="price_old")
        )

        assert result.price_id == "price_new"
        assert ("Price.modify", "price_old", False) in fake.calls

    async def test_sdk_error_becomes_upstream_error(self, fake_stripe):
        fake_stripe(fail=True)
        with pytest.raises(UpstreamError) as exc_info:
            await StripeGateway("sk_test_123").sync_plan(_plan())
        assert exc_info.value.error_code == ErrorCode.UPSTREAM_ERROR
