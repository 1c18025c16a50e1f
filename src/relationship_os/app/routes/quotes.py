"""Quote routes: seller creates, customer lists and decides."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.routes.auth import get_current_user_dep, require_capability
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import (
    QuoteCreate,
    QuoteDecisionResponse,
    QuoteResponse,
    QuoteStatusUpdate,
    SubscriptionResponse,
)
from relationship_os.infra.database import get_db
from relationship_os.services.quote_service import QuoteService

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteResponse, status_code=201)
async def create_quote(
    data: QuoteCreate,
    user: User = Depends(require_capability(Capability.CREATE_QUOTES)),
    db: AsyncSession = Depends(get_db),
):
    quote = await QuoteService(db).create_quote(
        user, data.customer_id, data.lines, notes=data.notes, currency=data.currency
    )
    return QuoteResponse.model_validate(quote)


@router.get("/mine", response_model=list[QuoteResponse])
async def my_quotes(
    user: User = Depends(require_capability(Capability.DECIDE_QUOTES)),
    db: AsyncSession = Depends(get_db),
):
    quotes = await QuoteService(db).list_customer_quotes(user)
    return [QuoteResponse.model_validate(q) for q in quotes]


@router.post("/{quote_id}/status", response_model=QuoteDecisionResponse)
async def set_quote_status(
    quote_id: str,
    data: QuoteStatusUpdate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject. Approval also returns the provisioned subscription."""
    decision = await QuoteService(db).set_quote_status(
        user, quote_id, data.status, comment=data.comment
    )
    subscription = None
    if decision.subscription is not None:
        subscription = SubscriptionResponse.model_validate(decision.subscription)
    return {
        "quote": QuoteResponse.model_validate(decision.quote),
        "subscription": subscription,
    }
