"""Streaming client for the coding agent (Anthropic Messages API)."""

from __future__ import annotations

from collections.abc import AsyncIterator
import os
from typing import Protocol

import anthropic
import structlog

from .errors import UpstreamError

logger = structlog.get_logger()

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 8192
DEFAULT_MAX_RETRIES = 2


class AgentCapability(Protocol):
    """Anything that turns a prompt into an ordered stream of text chunks."""

    def stream_text(self, prompt: str) -> AsyncIterator[str]: ...


class AnthropicAgentClient:
    """Client that streams a single-turn completion as text chunks.

    Text deltas are yielded in the order they arrive. HTTP failures,
    connection errors, timeouts and ``error`` events in the stream all raise
    UpstreamError.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = ANTHROPIC_BASE_URL,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 180.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self.model = model
        self.max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=max_retries,
        )

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        logger.info("agent_request_started", model=self.model, prompt_length=len(prompt))
        try:
            async with self._client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.APITimeoutError as e:
            logger.error("agent_request_timeout", error=str(e))
            raise UpstreamError(f"Agent request timed out: {e}") from e
        except anthropic.APIStatusError as e:
            logger.error("agent_request_failed", status_code=e.status_code, error=e.message)
            raise UpstreamError(
                f"Agent request failed with status {e.status_code}: {e.message}"
            ) from e
        except anthropic.APIError as e:
            logger.error("agent_request_error", error=str(e), error_type=type(e).__name__)
            raise UpstreamError(f"Agent request failed: {e}") from e
        logger.info("agent_request_finished", model=self.model)
