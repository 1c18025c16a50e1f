"""Subscription self-service: cancel, pause, resume.

Callers only ever see their own subscriptions. Anything else is reported
as not found, never as forbidden, so existence does not leak.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from relationship_os.domain.enums import Capability, SubscriptionStatus, has_capability
from relationship_os.domain.models import Subscription, User, utcnow
from relationship_os.services.errors import AuthorizationError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

S = SubscriptionStatus

# from_status -> allowed to_statuses. CANCELLED is terminal.
TRANSITION_MAP: dict[SubscriptionStatus, set[SubscriptionStatus]] = {
    S.ACTIVE: {S.PAUSED, S.CANCELLED},
    S.PAUSED: {S.ACTIVE, S.CANCELLED},
    S.CANCELLED: set(),
}


class SubscriptionService:
    """Lists and transitions a customer's own subscriptions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_my_subscriptions(self, customer: User) -> list[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.customer_id == customer.id)
            .options(
                selectinload(Subscription.entitlements),
                selectinload(Subscription.quote),
            )
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def cancel(self, customer: User, subscription_id: str) -> Subscription:
        return await self._transition(customer, subscription_id, S.CANCELLED)

    async def pause(self, customer: User, subscription_id: str) -> Subscription:
        return await self._transition(customer, subscription_id, S.PAUSED)

    async def resume(self, customer: User, subscription_id: str) -> Subscription:
        return await self._transition(customer, subscription_id, S.ACTIVE)

    async def _get_owned(self, customer: User, subscription_id: str) -> Subscription:
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.customer_id == customer.id,
            )
            .options(selectinload(Subscription.entitlements))
            .execution_options(populate_existing=True)
        )
        sub = result.scalar_one_or_none()
        if sub is None:
            raise NotFoundError("Subscription not found")
        return sub

    async def _transition(
        self,
        customer: User,
        subscription_id: str,
        target: SubscriptionStatus,
    ) -> Subscription:
        if not has_capability(customer.role, Capability.MANAGE_SUBSCRIPTIONS):
            raise AuthorizationError("Forbidden: insufficient role")

        sub = await self._get_owned(customer, subscription_id)
        current = SubscriptionStatus(sub.status)
        if target not in TRANSITION_MAP[current]:
            raise InvalidStateError(
                f"Cannot move subscription from {current.value} to {target.value}"
            )

        sub.status = target.value
        if target == S.CANCELLED:
            sub.auto_renew = False
            sub.end_date = utcnow()
        elif target == S.PAUSED:
            sub.auto_renew = False
        else:
            sub.auto_renew = True

        await self.db.commit()
        logger.info(
            "Subscription %s: %s -> %s (customer %s)",
            sub.id, current.value, target.value, customer.id,
        )
        return sub
