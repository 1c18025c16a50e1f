"""Payment checkout: hosted Stripe Checkout sessions for quote totals."""

import asyncio
import logging

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings
from relationship_os.domain.enums import Capability, has_capability
from relationship_os.domain.models import Quote, User
from relationship_os.services.errors import AppError, AuthorizationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


def amount_in_cents(total: float) -> int:
    return int(round(total * 100))


class PaymentService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def create_checkout(self, customer: User, quote_id: str) -> str:
        """Create a one-off payment session for the quote total. Returns the hosted URL."""
        if not has_capability(customer.role, Capability.CHECKOUT):
            raise AuthorizationError("Forbidden: insufficient role")
        if not self.settings.stripe_secret_key:
            raise AppError("Stripe not configured")

        result = await self.db.execute(
            select(Quote).where(Quote.id == quote_id, Quote.customer_id == customer.id)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError("Quote not found")

        frontend = self.settings.frontend_url.rstrip("/")
        params = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": quote.currency.lower(),
                        "unit_amount": amount_in_cents(quote.total_amount),
                        "product_data": {"name": f"Quote {quote.quote_number}"},
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{frontend}/payment-success",
            "cancel_url": f"{frontend}/payment-cancel",
        }

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.settings.stripe_secret_key,
                **params,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout failed for quote %s: %s", quote.id, exc)
            raise UpstreamError("Payment provider error") from exc

        logger.info("Checkout session created for quote %s", quote.quote_number)
        return session.url
