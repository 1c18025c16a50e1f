"""Tests for the assistant agent's prompts and degraded replies."""

import json
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from relationship_os.agents import base as agent_base
from relationship_os.agents.assistant_agent import AssistantAgent, build_quote_prompt
from relationship_os.agents.base import AgentResult
from relationship_os.agents.prompts.assistant import (
    AI_NOT_CONFIGURED,
    AI_RATE_LIMITED,
    AI_UNAVAILABLE,
    QUOTE_SUMMARY_SYSTEM_PROMPT,
)
from relationship_os.app.config import Settings
from relationship_os.domain.enums import QuoteStatus, Role
from relationship_os.infra import gemini_client
from relationship_os.services.quote_service import QuoteService
from relationship_os.services.subscription_service import SubscriptionService


@pytest.fixture
def ai_settings():
    return Settings(_env_file=None, gemini_api_key="test-key")


class FakeModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return SimpleNamespace(
            text=self.text,
            usage_metadata=SimpleNamespace(prompt_token_count=12, candidates_token_count=30),
        )


def _install_model(monkeypatch, model):
    captured = {}

    def _get_model(**kwargs):
        captured.update(kwargs)
        return model

    monkeypatch.setattr(gemini_client, "get_model", _get_model)
    return captured


def _quote():
    return SimpleNamespace(
        quote_number="Q-2026-1000",
        total_amount=250.0,
        currency="USD",
        lines=[
            SimpleNamespace(name="Seats", type="SUBSCRIPTION_SERVICE", quantity=2, unit_price=100.0),
            SimpleNamespace(name="Loyalty", type="DISCOUNT", quantity=1, unit_price=50.0),
        ],
    )


def test_quote_prompt_lists_every_line():
    prompt = build_quote_prompt(_quote())
    assert "Q-2026-1000" in prompt
    assert "250.0 USD" in prompt
    assert "Seats (SUBSCRIPTION_SERVICE) x2 @ 100.0" in prompt
    assert "Loyalty (DISCOUNT) x1 @ 50.0" in prompt


class TestSummarizeQuote:
    @pytest.mark.asyncio
    async def test_returns_model_text(self, monkeypatch, ai_settings):
        model = FakeModel(text="A clear summary.")
        captured = _install_model(monkeypatch, model)

        summary = await AssistantAgent(ai_settings).summarize_quote(_quote())

        assert summary == "A clear summary."
        assert captured["system_instruction"] == QUOTE_SUMMARY_SYSTEM_PROMPT
        assert captured["api_key"] == "test-key"
        assert "Q-2026-1000" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_not_configured_placeholder(self, monkeypatch, settings):
        model = FakeModel(text="unused")
        _install_model(monkeypatch, model)

        summary = await AssistantAgent(settings).summarize_quote(_quote())

        assert summary == AI_NOT_CONFIGURED
        assert model.prompts == []

    @pytest.mark.asyncio
    async def test_rate_limit_placeholder(self, monkeypatch, ai_settings):
        _install_model(monkeypatch, FakeModel(error=google_exceptions.ResourceExhausted("quota")))
        summary = await AssistantAgent(ai_settings).summarize_quote(_quote())
        assert summary == AI_RATE_LIMITED

    @pytest.mark.asyncio
    async def test_other_failure_placeholder(self, monkeypatch, ai_settings):
        _install_model(monkeypatch, FakeModel(error=RuntimeError("network down")))
        summary = await AssistantAgent(ai_settings).summarize_quote(_quote())
        assert summary == AI_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_empty_text_is_unavailable(self, monkeypatch, ai_settings):
        async def _generate(self, prompt, system_instruction=None):
            return AgentResult.success(data="")

        monkeypatch.setattr(agent_base.BaseAgent, "generate", _generate)
        assert await AssistantAgent(ai_settings).summarize_quote(_quote()) == AI_UNAVAILABLE


class TestBaseAgent:
    @pytest.mark.asyncio
    async def test_success_tracks_tokens(self, monkeypatch, ai_settings):
        _install_model(monkeypatch, FakeModel(text="ok"))
        result = await agent_base.BaseAgent("probe", ai_settings).generate("hello")
        assert result.ok is True
        assert result.tokens_used == 42

    @pytest.mark.asyncio
    async def test_rate_limit_flag(self, monkeypatch, ai_settings):
        _install_model(monkeypatch, FakeModel(error=google_exceptions.ResourceExhausted("quota")))
        result = await agent_base.BaseAgent("probe", ai_settings).generate("hello")
        assert result.ok is False
        assert result.rate_limited is True


class TestSubscriptionInsights:
    @pytest.mark.asyncio
    async def test_prompt_is_subscription_json(self, db_session, monkeypatch, ai_settings, make_user, make_quote):
        seller = await make_user(role=Role.SELLER)
        customer = await make_user()
        quote = await make_quote(seller, customer)
        await QuoteService(db_session).set_quote_status(customer, quote.id, QuoteStatus.APPROVED)
        subs = await SubscriptionService(db_session).list_my_subscriptions(customer)

        model = FakeModel(text="Consider annual billing.")
        _install_model(monkeypatch, model)

        insights = await AssistantAgent(ai_settings).subscription_insights(subs)

        assert insights == "Consider annual billing."
        payload = json.loads(model.prompts[0])
        assert payload[0]["status"] == "ACTIVE"
        assert payload[0]["entitlements"][0]["name"] == "Platform"
        assert payload[0]["quote"]["quoteNumber"] == quote.quote_number
