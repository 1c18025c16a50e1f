"""Tests for customer subscription self-service transitions."""

import pytest

from relationship_os.domain.enums import QuoteStatus, Role, SubscriptionStatus
from relationship_os.domain.models import Subscription
from relationship_os.services.errors import AuthorizationError, InvalidStateError, NotFoundError
from relationship_os.services.quote_service import QuoteService
from relationship_os.services.subscription_service import TRANSITION_MAP, SubscriptionService

S = SubscriptionStatus


@pytest.fixture
def approved_subscription(db_session, make_user, make_quote):
    """Factory: approve a fresh quote for *customer* and return its subscription."""
    async def _factory(customer=None):
        seller = await make_user(role=Role.SELLER)
        customer = customer or await make_user()
        quote = await make_quote(seller, customer)
        decision = await QuoteService(db_session).set_quote_status(
            customer, quote.id, QuoteStatus.APPROVED
        )
        return customer, decision.subscription

    return _factory


def test_cancelled_is_terminal():
    assert TRANSITION_MAP[S.CANCELLED] == set()


class TestTransitions:
    @pytest.mark.asyncio
    async def test_pause_then_resume(self, db_session, approved_subscription):
        customer, sub = await approved_subscription()
        service = SubscriptionService(db_session)

        paused = await service.pause(customer, sub.id)
        assert paused.status == S.PAUSED.value
        assert paused.auto_renew is False

        resumed = await service.resume(customer, sub.id)
        assert resumed.status == S.ACTIVE.value
        assert resumed.auto_renew is True

    @pytest.mark.asyncio
    async def test_cancel_sets_end_date(self, db_session, approved_subscription):
        customer, sub = await approved_subscription()
        cancelled = await SubscriptionService(db_session).cancel(customer, sub.id)

        assert cancelled.status == S.CANCELLED.value
        assert cancelled.auto_renew is False
        assert cancelled.end_date is not None

    @pytest.mark.asyncio
    async def test_resume_cancelled_is_invalid(self, db_session, approved_subscription):
        customer, sub = await approved_subscription()
        service = SubscriptionService(db_session)
        await service.cancel(customer, sub.id)

        with pytest.raises(InvalidStateError):
            await service.resume(customer, sub.id)

    @pytest.mark.asyncio
    async def test_pause_paused_is_invalid(self, db_session, approved_subscription):
        customer, sub = await approved_subscription()
        service = SubscriptionService(db_session)
        await service.pause(customer, sub.id)

        with pytest.raises(InvalidStateError):
            await service.pause(customer, sub.id)


class TestOwnership:
    @pytest.mark.asyncio
    async def test_other_customer_gets_not_found_and_state_unchanged(
        self, db_session, make_user, approved_subscription
    ):
        _, sub = await approved_subscription()
        intruder = await make_user()

        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).cancel(intruder, sub.id)

        stored = await db_session.get(Subscription, sub.id, populate_existing=True)
        assert stored.status == S.ACTIVE.value
        assert stored.auto_renew is True

    @pytest.mark.asyncio
    async def test_seller_cannot_manage(self, db_session, make_user, approved_subscription):
        _, sub = await approved_subscription()
        seller = await make_user(role=Role.SELLER)

        with pytest.raises(AuthorizationError):
            await SubscriptionService(db_session).pause(seller, sub.id)

    @pytest.mark.asyncio
    async def test_list_only_own(self, db_session, make_user, approved_subscription):
        alice = await make_user()
        await approved_subscription(alice)
        await approved_subscription()

        mine = await SubscriptionService(db_session).list_my_subscriptions(alice)
        assert len(mine) == 1
        assert mine[0].customer_id == alice.id
        assert len(mine[0].entitlements) == 1
