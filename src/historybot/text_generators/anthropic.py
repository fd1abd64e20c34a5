"""Text-generation backend that calls Anthropic's Claude models."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from anthropic import APIConnectionError, APIError, AsyncAnthropic, RateLimitError

from historybot import settings

from .base import TextGeneratorAPI

_log = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# A single shared client is plenty; reuse it across all requests              #
# --------------------------------------------------------------------------- #
_CLIENT_CACHE: Dict[str, AsyncAnthropic] = {}


class AnthropicTextGenerator(TextGeneratorAPI):
    """Generate summaries using Anthropic's Claude models.

    Relies on the ``anthropic`` package and an ``ANTHROPIC_API_KEY``
    environment variable. The prompt is sent as a single user message and
    the text blocks of the reply are joined and returned. ``max_tokens``
    defaults to ``SUMMARY_MAX_TOKENS`` (4096).
    """

    def __init__(self, model: str = "claude-3-5-haiku-latest", max_tokens: int | None = None) -> None:
        self.model = model
        self.max_tokens = max_tokens or settings.SUMMARY_MAX_TOKENS

    def _get_client(self) -> AsyncAnthropic:
        """Return (and cache) a shared ``AsyncAnthropic`` client instance."""
        if "default" not in _CLIENT_CACHE:
            _CLIENT_CACHE["default"] = AsyncAnthropic()  # picks up API key
        return _CLIENT_CACHE["default"]

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        if not isinstance(prompt, str):
            raise TypeError("prompt must be a string")

        client = self._get_client()
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        try:
            response = await client.messages.create(**kwargs)
        except RateLimitError as e:
            _log.warning("Anthropic rate limit hit for model %s: %s", self.model, e)
            raise
        except APIConnectionError as e:
            _log.error("Anthropic connection error for model %s: %s", self.model, e)
            raise
        except APIError as e:
            _log.error("Anthropic API error for model %s: %s", self.model, e.message)
            raise

        # SDK returns a list of content blocks; aggregate text blocks.
        parts: List[str] = []
        for block in getattr(response, "content", []) or []:
            text = getattr(block, "text", None)
            if text:
                parts.append(text)
        return "".join(parts).strip()
