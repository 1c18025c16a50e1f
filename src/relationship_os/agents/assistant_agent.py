"""Assistant Agent: explains quotes and comments on subscription usage.

Provider failures never propagate: callers always get prose back, either
the model's answer or a placeholder.
"""

import json
import logging
from typing import Iterable

from relationship_os.agents.base import AgentResult, BaseAgent
from relationship_os.agents.prompts.assistant import (
    AI_NOT_CONFIGURED,
    AI_RATE_LIMITED,
    AI_UNAVAILABLE,
    QUOTE_LINE_TEMPLATE,
    QUOTE_SUMMARY_SYSTEM_PROMPT,
    QUOTE_SUMMARY_TEMPLATE,
    SUBSCRIPTION_INSIGHTS_SYSTEM_PROMPT,
)
from relationship_os.app.config import Settings
from relationship_os.domain.models import Quote, Subscription
from relationship_os.domain.schemas import SubscriptionWithQuote

logger = logging.getLogger(__name__)


def build_quote_prompt(quote: Quote) -> str:
    lines = "\n".join(
        QUOTE_LINE_TEMPLATE.format(
            name=line.name,
            type=line.type,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in quote.lines
    )
    return QUOTE_SUMMARY_TEMPLATE.format(
        quote_number=quote.quote_number,
        total_amount=quote.total_amount,
        currency=quote.currency,
        lines=lines,
    )


def build_insights_prompt(subscriptions: Iterable[Subscription]) -> str:
    """Subscriptions (with entitlements and quote loaded) as a JSON document."""
    payload = [
        SubscriptionWithQuote.model_validate(sub).model_dump(mode="json", by_alias=True)
        for sub in subscriptions
    ]
    return json.dumps(payload)


class AssistantAgent(BaseAgent):
    """Quote summaries and subscription insights via Gemini."""

    def __init__(self, settings: Settings):
        super().__init__(agent_name="assistant", settings=settings, temperature=0.4)

    async def summarize_quote(self, quote: Quote) -> str:
        result = await self.generate(
            prompt=build_quote_prompt(quote),
            system_instruction=QUOTE_SUMMARY_SYSTEM_PROMPT,
        )
        return self._text_or_placeholder(result)

    async def subscription_insights(self, subscriptions: Iterable[Subscription]) -> str:
        result = await self.generate(
            prompt=build_insights_prompt(subscriptions),
            system_instruction=SUBSCRIPTION_INSIGHTS_SYSTEM_PROMPT,
        )
        return self._text_or_placeholder(result)

    def _text_or_placeholder(self, result: AgentResult) -> str:
        if result.ok and result.data:
            return result.data
        if not self.configured:
            return AI_NOT_CONFIGURED
        if result.rate_limited:
            return AI_RATE_LIMITED
        return AI_UNAVAILABLE
