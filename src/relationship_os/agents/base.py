"""Base agent class for Relationship OS AI helpers.

Every agent inherits from BaseAgent, which provides:

- Gemini model access via the infra.gemini_client wrapper
- A standard AgentResult return type (Result pattern)
- Latency measurement and token tracking in the logs
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

from google.api_core import exceptions as google_exceptions

from relationship_os.app.config import Settings

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT_SECONDS = 60


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class AgentResult:
    """Standard result type for all agent operations.

    Follows the Result pattern: every agent call returns an AgentResult
    instead of raising exceptions. Callers check ``result.ok`` to
    determine success or failure.

    Attributes:
        ok: True if the operation succeeded.
        data: The response payload (text).
        error: Human-readable error description when ``ok`` is False.
        rate_limited: True when the provider rejected the call for quota.
        tokens_used: Total tokens consumed (prompt + completion).
        latency_ms: Wall-clock time for the operation in milliseconds.
    """

    ok: bool
    data: Any = None
    error: Optional[str] = None
    rate_limited: bool = False
    tokens_used: int = 0
    latency_ms: int = 0

    @classmethod
    def success(
        cls,
        data: Any,
        tokens_used: int = 0,
        latency_ms: int = 0,
    ) -> "AgentResult":
        """Create a successful result."""
        return cls(
            ok=True,
            data=data,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        latency_ms: int = 0,
        rate_limited: bool = False,
    ) -> "AgentResult":
        """Create a failure result."""
        return cls(ok=False, error=error, latency_ms=latency_ms, rate_limited=rate_limited)


# ---------------------------------------------------------------------------
# Base agent
# ---------------------------------------------------------------------------

class BaseAgent:
    """Base class for all Relationship OS agents.

    Subclasses assemble domain-specific prompts and call ``generate``.
    A missing API key yields a failure result without calling the provider.
    """

    def __init__(
        self,
        agent_name: str,
        settings: Settings,
        temperature: float = 0.4,
    ):
        """Initialise the agent.

        Args:
            agent_name: A short, unique name for this agent (used in logs).
            settings: Application settings (API key and model name).
            temperature: Generation temperature (0.0-1.0).
        """
        self.agent_name = agent_name
        self.settings = settings
        self.model_name = settings.gemini_model
        self.temperature = temperature

    @property
    def configured(self) -> bool:
        return bool(self.settings.gemini_api_key)

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
    ) -> AgentResult:
        """Generate a single-turn response from Gemini.

        Args:
            prompt: The user prompt to send.
            system_instruction: Optional system instruction that shapes
                the model's behaviour.

        Returns:
            An ``AgentResult`` with the response text in ``data``.
        """
        if not self.configured:
            logger.error("[%s] GEMINI_API_KEY is missing", self.agent_name)
            return AgentResult.failure("AI not configured")

        start_time = time.time()
        try:
            from relationship_os.infra.gemini_client import get_model

            model = get_model(
                api_key=self.settings.gemini_api_key,
                model_name=self.model_name,
                temperature=self.temperature,
                system_instruction=system_instruction,
            )

            response = await asyncio.wait_for(
                model.generate_content_async(prompt),
                timeout=GENERATION_TIMEOUT_SECONDS,
            )
            latency_ms = int((time.time() - start_time) * 1000)

            tokens_used = 0
            if getattr(response, "usage_metadata", None):
                prompt_tokens = getattr(
                    response.usage_metadata, "prompt_token_count", 0
                ) or 0
                completion_tokens = getattr(
                    response.usage_metadata, "candidates_token_count", 0
                ) or 0
                tokens_used = prompt_tokens + completion_tokens

            logger.info(
                "[%s] Generation succeeded: tokens=%d, latency=%dms",
                self.agent_name,
                tokens_used,
                latency_ms,
            )
            return AgentResult.success(
                data=response.text,
                tokens_used=tokens_used,
                latency_ms=latency_ms,
            )

        except google_exceptions.ResourceExhausted as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error("[%s] Rate limited after %dms: %s", self.agent_name, latency_ms, exc)
            return AgentResult.failure(str(exc), latency_ms=latency_ms, rate_limited=True)

        except Exception as exc:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "[%s] Generation failed after %dms: %s",
                self.agent_name,
                latency_ms,
                exc,
            )
            return AgentResult.failure(str(exc), latency_ms=latency_ms)
