"""Quote lifecycle: seller drafts, customer decides, approval provisions a subscription.

Transitions::

    SENT --(customer approves)--> APPROVED   (+ Subscription + Entitlements)
    SENT --(customer rejects)---> REJECTED

APPROVED and REJECTED are terminal.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from relationship_os.domain.enums import (
    NON_ENTITLEMENT_LINE_TYPES,
    Capability,
    QuoteStatus,
    Role,
    SubscriptionStatus,
    has_capability,
)
from relationship_os.domain.models import (
    Entitlement,
    Quote,
    QuoteLine,
    Subscription,
    User,
    utcnow,
)
from relationship_os.domain.schemas import QuoteLineCreate
from relationship_os.services.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

QUOTE_NUMBER_OFFSET = 1000
MAX_QUOTE_NUMBER_ATTEMPTS = 5

QUOTE_TRANSITIONS: dict[QuoteStatus, set[QuoteStatus]] = {
    QuoteStatus.SENT: {QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: set(),
    QuoteStatus.REJECTED: set(),
}


def format_quote_number(year: int, ordinal: int) -> str:
    return f"Q-{year}-{QUOTE_NUMBER_OFFSET + ordinal}"


def quote_total(lines: Sequence[QuoteLineCreate]) -> float:
    """Sum of unit_price x quantity. DISCOUNT lines count as given."""
    return sum(line.unit_price * max(line.quantity or 1, 1) for line in lines)


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return moment.replace(year=moment.year + years, day=28)


@dataclass
class QuoteDecision:
    quote: Quote
    subscription: Optional[Subscription] = None


class QuoteService:
    """Creates quotes and applies customer decisions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_quote(
        self,
        seller: User,
        customer_id: str,
        lines: Sequence[QuoteLineCreate],
        notes: str | None = None,
        currency: str = "USD",
    ) -> Quote:
        """Persist a SENT quote with its lines as one unit.

        The number is ``Q-<year>-<1000 + quote count>``. ``quote_number`` is
        unique, so a concurrent create that read the same count fails the
        insert; the unit is rolled back and retried with the next ordinal.
        """
        if not has_capability(seller.role, Capability.CREATE_QUOTES):
            raise AuthorizationError("Forbidden: insufficient role")
        if not customer_id or not lines:
            raise ValidationError("customerId and lines required")

        seller_id = seller.id
        customer = await self.db.get(User, customer_id)
        if customer is None or customer.role != Role.CUSTOMER.value:
            raise NotFoundError("Customer not found")

        total = quote_total(lines)
        year = utcnow().year
        currency = (currency or "USD").upper()

        for attempt in range(MAX_QUOTE_NUMBER_ATTEMPTS):
            count = await self.db.scalar(select(func.count()).select_from(Quote))
            quote_number = format_quote_number(year, count + attempt)
            quote = Quote(
                quote_number=quote_number,
                customer_id=customer_id,
                seller_id=seller_id,
                total_amount=total,
                currency=currency,
                status=QuoteStatus.SENT.value,
                notes=notes,
                lines=[
                    QuoteLine(
                        position=position,
                        type=line.type.value,
                        name=line.name,
                        description=line.description,
                        unit_price=line.unit_price,
                        quantity=line.quantity or 1,
                        billing_cycle=line.billing_cycle.value if line.billing_cycle else None,
                        metadata_=line.metadata,
                    )
                    for position, line in enumerate(lines)
                ],
            )
            self.db.add(quote)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    "Quote number %s already taken (attempt %d)", quote_number, attempt + 1
                )
                continue

            logger.info("Seller %s created quote %s for %s", seller_id, quote_number, customer_id)
            return quote

        raise ConflictError("Could not allocate a quote number, please retry")

    async def list_customer_quotes(self, customer: User) -> list[Quote]:
        result = await self.db.execute(
            select(Quote)
            .where(Quote.customer_id == customer.id)
            .options(selectinload(Quote.lines))
            .order_by(Quote.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_visible_quote(self, user: User, quote_id: str) -> Quote:
        """A quote the user is party to (or any quote for ADMIN), with lines."""
        stmt = select(Quote).where(Quote.id == quote_id).options(selectinload(Quote.lines))
        if user.role != Role.ADMIN.value:
            stmt = stmt.where(or_(Quote.customer_id == user.id, Quote.seller_id == user.id))
        quote = (await self.db.execute(stmt)).scalar_one_or_none()
        if quote is None:
            raise NotFoundError("Quote not found")
        return quote

    async def set_quote_status(
        self,
        customer: User,
        quote_id: str,
        status: QuoteStatus | None,
        comment: str | None = None,
    ) -> QuoteDecision:
        """Apply the customer's decision; approval provisions a subscription atomically."""
        if not has_capability(customer.role, Capability.DECIDE_QUOTES):
            raise AuthorizationError("Forbidden: insufficient role")
        if status not in (QuoteStatus.APPROVED, QuoteStatus.REJECTED):
            raise ValidationError("status must be APPROVED or REJECTED")

        result = await self.db.execute(
            select(Quote)
            .where(Quote.id == quote_id, Quote.customer_id == customer.id)
            .options(selectinload(Quote.lines))
            .execution_options(populate_existing=True)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError("Quote not found")

        current = QuoteStatus(quote.status)
        if status not in QUOTE_TRANSITIONS[current]:
            raise InvalidStateError(f"Quote is already {current.value}")

        now = utcnow()
        values = {"status": status.value, "updated_at": now}
        if comment and comment.strip():
            values["notes"] = comment

        subscription = None
        try:
            # Guarded on SENT so a concurrent decision cannot apply twice
            updated = await self.db.execute(
                update(Quote)
                .where(Quote.id == quote.id, Quote.status == QuoteStatus.SENT.value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount != 1:
                raise InvalidStateError("Quote has already been decided")

            if status == QuoteStatus.APPROVED:
                subscription = self._provision_subscription(quote, now)
                self.db.add(subscription)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(quote, ["status", "notes", "updated_at"])
        logger.info("Customer %s set quote %s to %s", customer.id, quote.quote_number, status.value)
        return QuoteDecision(quote=quote, subscription=subscription)

    @staticmethod
    def _provision_subscription(quote: Quote, now: datetime) -> Subscription:
        """One entitlement per recurring line; DISCOUNT and ONE_TIME_PART are skipped."""
        return Subscription(
            customer_id=quote.customer_id,
            quote_id=quote.id,
            name=f"Subscription from {quote.quote_number}",
            status=SubscriptionStatus.ACTIVE.value,
            auto_renew=True,
            start_date=now,
            renewal_date=add_years(now, 1),
            created_at=now,
            entitlements=[
                Entitlement(
                    type=line.type,
                    name=line.name,
                    capacity=line.quantity,
                    metadata_=line.metadata_,
                )
                for line in quote.lines
                if line.type not in NON_ENTITLEMENT_LINE_TYPES
            ],
        )
