"""Read-only aggregation views for the seller and customer dashboards.

Every view is computed per request; nothing here writes.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from relationship_os.domain.enums import Role, SubscriptionStatus
from relationship_os.domain.models import ChatMessage, Quote, Subscription, User
from relationship_os.services.errors import NotFoundError
from relationship_os.services.revenue import estimate_monthly_total

logger = logging.getLogger(__name__)

SELLER_RECENT_QUOTES = 5
SELLER_RECENT_SUBSCRIPTIONS = 5
SELLER_RECENT_MESSAGES = 10
CUSTOMER_RECENT_QUOTES = 10
CUSTOMER_RECENT_MESSAGES = 20
CUSTOMER_DETAIL_MESSAGES = 50


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Seller views
    # ------------------------------------------------------------------

    async def seller_dashboard(self, seller: User) -> dict:
        total_quotes = await self.db.scalar(
            select(func.count()).select_from(Quote).where(Quote.seller_id == seller.id)
        )

        active_subs = (await self.db.execute(
            select(Subscription)
            .join(Quote, Subscription.quote_id == Quote.id)
            .where(
                Quote.seller_id == seller.id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
            )
            .options(selectinload(Subscription.quote).selectinload(Quote.lines))
        )).scalars().all()

        recent_quotes = (await self.db.execute(
            select(Quote)
            .where(Quote.seller_id == seller.id)
            .options(selectinload(Quote.customer), selectinload(Quote.lines))
            .order_by(Quote.created_at.desc())
            .limit(SELLER_RECENT_QUOTES)
        )).scalars().all()

        recent_subs = (await self.db.execute(
            self._seller_subscriptions_stmt(seller).limit(SELLER_RECENT_SUBSCRIPTIONS)
        )).scalars().all()

        recent_messages = (await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.seller_id == seller.id)
            .options(selectinload(ChatMessage.customer))
            .order_by(ChatMessage.created_at.desc())
            .limit(SELLER_RECENT_MESSAGES)
        )).scalars().all()

        return {
            "summary": {
                "total_quotes": total_quotes or 0,
                "total_active_subscriptions": len(active_subs),
                "estimated_mrr": estimate_monthly_total(active_subs),
            },
            "recent_quotes": list(recent_quotes),
            "recent_subscriptions": list(recent_subs),
            "recent_messages": list(recent_messages),
        }

    async def seller_quotes(self, seller: User) -> list[Quote]:
        result = await self.db.execute(
            select(Quote)
            .where(Quote.seller_id == seller.id)
            .options(selectinload(Quote.customer), selectinload(Quote.lines))
            .order_by(Quote.created_at.desc())
        )
        return list(result.scalars().all())

    async def seller_subscriptions(self, seller: User) -> list[Subscription]:
        result = await self.db.execute(self._seller_subscriptions_stmt(seller))
        return list(result.scalars().all())

    async def seller_customers(self, seller: User) -> list[User]:
        """Distinct customers who received at least one quote from this seller."""
        quoted = select(Quote.customer_id).where(Quote.seller_id == seller.id)
        result = await self.db.execute(
            select(User).where(User.id.in_(quoted)).order_by(User.name.asc())
        )
        return list(result.scalars().all())

    async def seller_customer_detail(self, seller: User, customer_id: str) -> dict:
        customer = await self.db.get(User, customer_id)
        if customer is None or customer.role != Role.CUSTOMER.value:
            raise NotFoundError("Customer not found")

        quotes = (await self.db.execute(
            select(Quote)
            .where(Quote.seller_id == seller.id, Quote.customer_id == customer_id)
            .options(selectinload(Quote.lines))
            .order_by(Quote.created_at.desc())
        )).scalars().all()

        subscriptions = (await self.db.execute(
            select(Subscription)
            .join(Quote, Subscription.quote_id == Quote.id)
            .where(Subscription.customer_id == customer_id, Quote.seller_id == seller.id)
            .options(selectinload(Subscription.entitlements), selectinload(Subscription.quote))
            .order_by(Subscription.created_at.desc())
        )).scalars().all()

        messages = (await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.customer_id == customer_id, ChatMessage.seller_id == seller.id)
            .order_by(ChatMessage.created_at.desc())
            .limit(CUSTOMER_DETAIL_MESSAGES)
        )).scalars().all()

        return {
            "customer": customer,
            "quotes": list(quotes),
            "subscriptions": list(subscriptions),
            "recent_messages": list(messages),
        }

    @staticmethod
    def _seller_subscriptions_stmt(seller: User):
        return (
            select(Subscription)
            .join(Quote, Subscription.quote_id == Quote.id)
            .where(Quote.seller_id == seller.id)
            .options(
                selectinload(Subscription.entitlements),
                selectinload(Subscription.customer),
                selectinload(Subscription.quote),
            )
            .order_by(Subscription.created_at.desc())
        )

    # ------------------------------------------------------------------
    # Customer view
    # ------------------------------------------------------------------

    async def customer_dashboard(self, customer: User) -> dict:
        total_quotes = await self.db.scalar(
            select(func.count()).select_from(Quote).where(Quote.customer_id == customer.id)
        )

        quotes = (await self.db.execute(
            select(Quote)
            .where(Quote.customer_id == customer.id)
            .options(selectinload(Quote.seller), selectinload(Quote.lines))
            .order_by(Quote.created_at.desc())
            .limit(CUSTOMER_RECENT_QUOTES)
        )).scalars().all()

        subs = (await self.db.execute(
            select(Subscription)
            .where(Subscription.customer_id == customer.id)
            .options(
                selectinload(Subscription.entitlements),
                selectinload(Subscription.quote).selectinload(Quote.lines),
            )
            .order_by(Subscription.created_at.desc())
        )).scalars().all()

        messages = (await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.customer_id == customer.id)
            .options(selectinload(ChatMessage.seller))
            .order_by(ChatMessage.created_at.desc())
            .limit(CUSTOMER_RECENT_MESSAGES)
        )).scalars().all()

        active = [s for s in subs if s.status == SubscriptionStatus.ACTIVE.value]
        return {
            "summary": {
                "total_quotes": total_quotes or 0,
                "total_subscriptions": len(subs),
                "active_subscriptions": len(active),
                "estimated_monthly_spend": estimate_monthly_total(active),
            },
            "recent_quotes": list(quotes),
            "subscriptions": list(subs),
            "recent_messages": list(messages),
        }
