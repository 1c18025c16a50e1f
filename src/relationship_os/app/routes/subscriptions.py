"""Subscription self-service routes for customers."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.routes.auth import get_current_user_dep, require_capability
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import SubscriptionResponse, SubscriptionWithQuote
from relationship_os.infra.database import get_db
from relationship_os.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/mine", response_model=list[SubscriptionWithQuote])
async def my_subscriptions(
    user: User = Depends(require_capability(Capability.MANAGE_SUBSCRIPTIONS)),
    db: AsyncSession = Depends(get_db),
):
    subs = await SubscriptionService(db).list_my_subscriptions(user)
    return [SubscriptionWithQuote.model_validate(s) for s in subs]


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).cancel(user, subscription_id)
    return SubscriptionResponse.model_validate(sub)


@router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
async def pause_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).pause(user, subscription_id)
    return SubscriptionResponse.model_validate(sub)


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
async def resume_subscription(
    subscription_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    sub = await SubscriptionService(db).resume(user, subscription_id)
    return SubscriptionResponse.model_validate(sub)
