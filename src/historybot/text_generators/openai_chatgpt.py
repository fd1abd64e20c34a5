# text_generators/openai_chatgpt.py
from __future__ import annotations

import logging
from typing import Dict

from openai import AsyncOpenAI

from historybot import settings

from .base import TextGeneratorAPI

_CLIENT_CACHE: Dict[str, AsyncOpenAI] = {}
_LOG = logging.getLogger(__name__)


class OpenAIChatTextGenerator(TextGeneratorAPI):
    """Text-generation backend for OpenAI models.

    - gpt-5 family models go through the Responses API with low reasoning effort.
    - Other models (e.g. gpt-4o-mini) use Chat Completions with a temperature.

    Requires OPENAI_API_KEY in the environment.
    """

    def __init__(self, model: str = "gpt-4o-mini", max_tokens: int | None = None) -> None:
        self.model = model
        self.max_tokens = max_tokens or settings.SUMMARY_MAX_TOKENS

    def _get_client(self) -> AsyncOpenAI:
        if "default" not in _CLIENT_CACHE:
            _CLIENT_CACHE["default"] = AsyncOpenAI()  # picks up OPENAI_API_KEY
        return _CLIENT_CACHE["default"]

    def _is_gpt5(self) -> bool:
        return (self.model or "").lower().startswith("gpt-5")

    async def generate(self, prompt: str, *, temperature: float = 0.7) -> str:
        if not isinstance(prompt, str):
            raise TypeError("prompt must be a string")

        client = self._get_client()

        if self._is_gpt5():
            resp = await client.responses.create(
                model=self.model,
                input=prompt,
                reasoning={"effort": "low"},
                max_output_tokens=self.max_tokens,
            )
            text = getattr(resp, "output_text", None) or ""
            _LOG.debug("OpenAI Responses output_len=%d model=%s", len(text), self.model)
            return text.strip()

        resp = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=self.max_tokens,
        )
        choice = resp.choices[0]
        return (choice.message.content or "").strip()
