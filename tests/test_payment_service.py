"""Tests for Stripe checkout session creation."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from relationship_os.app.config import Settings
from relationship_os.domain.enums import Role
from relationship_os.services.errors import AppError, AuthorizationError, NotFoundError, UpstreamError
from relationship_os.services.payment_service import PaymentService, amount_in_cents


@pytest.fixture
def stripe_settings():
    return Settings(_env_file=None, stripe_secret_key="sk_test_123", frontend_url="http://app.test/")


@pytest.fixture
def fake_checkout(monkeypatch):
    create = MagicMock(return_value=SimpleNamespace(url="https://checkout.stripe.test/session"))
    monkeypatch.setattr(stripe.checkout.Session, "create", create)
    return create


def test_amount_in_cents_rounds():
    assert amount_in_cents(89.99) == 8999
    assert amount_in_cents(250) == 25000


class TestCreateCheckout:
    @pytest.mark.asyncio
    async def test_creates_payment_session(self, db_session, stripe_settings, fake_checkout, make_user, make_quote):
        seller = await make_user(role=Role.SELLER)
        customer = await make_user()
        quote = await make_quote(seller, customer)

        url = await PaymentService(db_session, stripe_settings).create_checkout(customer, quote.id)

        assert url == "https://checkout.stripe.test/session"
        params = fake_checkout.call_args.kwargs
        assert params["api_key"] == "sk_test_123"
        assert params["mode"] == "payment"
        item = params["line_items"][0]
        assert item["quantity"] == 1
        assert item["price_data"]["currency"] == "usd"
        assert item["price_data"]["unit_amount"] == 8999
        assert item["price_data"]["product_data"]["name"] == f"Quote {quote.quote_number}"
        assert params["success_url"] == "http://app.test/payment-success"
        assert params["cancel_url"] == "http://app.test/payment-cancel"

    @pytest.mark.asyncio
    async def test_not_configured(self, db_session, settings, fake_checkout, make_user):
        customer = await make_user()
        with pytest.raises(AppError, match="Stripe not configured") as exc_info:
            await PaymentService(db_session, settings).create_checkout(customer, "any")
        assert exc_info.value.status_code == 500
        fake_checkout.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_customers_quote(self, db_session, stripe_settings, fake_checkout, make_user, make_quote):
        seller = await make_user(role=Role.SELLER)
        owner = await make_user()
        stranger = await make_user()
        quote = await make_quote(seller, owner)

        with pytest.raises(NotFoundError):
            await PaymentService(db_session, stripe_settings).create_checkout(stranger, quote.id)

    @pytest.mark.asyncio
    async def test_seller_cannot_checkout(self, db_session, stripe_settings, make_user):
        seller = await make_user(role=Role.SELLER)
        with pytest.raises(AuthorizationError):
            await PaymentService(db_session, stripe_settings).create_checkout(seller, "any")

    @pytest.mark.asyncio
    async def test_provider_error_is_upstream(self, db_session, stripe_settings, monkeypatch, make_user, make_quote):
        seller = await make_user(role=Role.SELLER)
        customer = await make_user()
        quote = await make_quote(seller, customer)

        def _fail(**kwargs):
            raise stripe.StripeError("card network down")

        monkeypatch.setattr(stripe.checkout.Session, "create", _fail)
        with pytest.raises(UpstreamError):
            await PaymentService(db_session, stripe_settings).create_checkout(customer, quote.id)
