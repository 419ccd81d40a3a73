"""Anthropic Claude generator implementation."""

import logging
from collections.abc import AsyncGenerator

import httpx
from anthropic import APIError, APITimeoutError, AsyncAnthropic, RateLimitError

from config import Settings, get_settings

from .base import BaseGenerator, GenerationError

logger = logging.getLogger(__name__)


class AnthropicGenerator(BaseGenerator):
    """Claude generator via Anthropic API."""

    def __init__(
        self, model: str | None = None, settings: Settings | None = None
    ) -> None:
        settings = settings or get_settings()
        self.model = model or settings.llm_model
        self.settings = settings

        self._client = AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=httpx.Timeout(timeout=settings.llm_timeout_seconds, connect=10.0),
        )

    async def stream(
        self,
        prompt: str,
        system: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream cumulative snapshots of Claude's answer."""
        snapshot = ""
        try:
            async with self._client.messages.stream(
                model=self.model,
                max_tokens=max_tokens or self.settings.llm_max_tokens,
                temperature=temperature
                if temperature is not None
                else self.settings.llm_temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    if not text:
                        continue
                    snapshot += text
                    yield snapshot

        except RateLimitError as e:
            logger.warning("Rate limit during streaming: %s", e)
            raise GenerationError("Rate limit exceeded.") from e
        except APITimeoutError as e:
            logger.warning("Generation timed out: %s", e)
            raise GenerationError("Generation timed out.") from e
        except APIError as e:
            logger.error("API error during streaming: %s", e)
            raise GenerationError(f"LLM error: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Transport error during streaming: %s", e)
            raise GenerationError(f"Streaming failed: {e}") from e
