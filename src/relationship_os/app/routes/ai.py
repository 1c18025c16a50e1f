"""AI assist routes. Provider failures degrade to placeholder text."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.agents.assistant_agent import AssistantAgent
from relationship_os.app.config import Settings, get_settings
from relationship_os.app.routes.auth import get_current_user_dep
from relationship_os.domain.models import User
from relationship_os.domain.schemas import InsightsResponse, QuoteSummaryResponse
from relationship_os.infra.database import get_db
from relationship_os.services.quote_service import QuoteService
from relationship_os.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/ai", tags=["ai"])


def get_assistant_agent(settings: Settings = Depends(get_settings)) -> AssistantAgent:
    return AssistantAgent(settings)


@router.get("/quote-summary/{quote_id}", response_model=QuoteSummaryResponse)
async def quote_summary(
    quote_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
    agent: AssistantAgent = Depends(get_assistant_agent),
):
    quote = await QuoteService(db).get_visible_quote(user, quote_id)
    return {"summary": await agent.summarize_quote(quote)}


@router.get("/insights/subscriptions", response_model=InsightsResponse)
async def subscription_insights(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
    agent: AssistantAgent = Depends(get_assistant_agent),
):
    subs = await SubscriptionService(db).list_my_subscriptions(user)
    return {"insights": await agent.subscription_insights(subs)}
