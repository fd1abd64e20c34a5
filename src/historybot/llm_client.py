"""Build the text generator used by digest commands."""

from __future__ import annotations

import asyncio
import logging

from celery.exceptions import TimeoutError as CeleryTimeoutError

from historybot import settings
from historybot.text_generators import (
    ModelClass,
    TextGeneratorAPI,
    get_text_generator,
    model_for_class,
)

_LOG = logging.getLogger(__name__)


class QueuedTextGenerator(TextGeneratorAPI):
    """Runs generation on a Celery worker via the ``text`` queue."""

    def __init__(self, api: str, model: str, timeout: float = 180.0, temperature: float = 0.7) -> None:
        self.api = api
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    async def generate(self, prompt: str) -> str:
        """Dispatch ``tasks.generate_text`` and wait for it off the event loop.

        Raises:
            RuntimeError: If the task exceeds the timeout.
        """
        from historybot.tasks import generate_text

        task = generate_text.apply_async(
            (self.api, self.model, prompt, self.temperature),
            queue="text",
        )
        try:
            return await asyncio.to_thread(task.get, timeout=self.timeout)
        except CeleryTimeoutError as exc:
            _LOG.warning(
                "Celery text task timeout (model=%s, timeout=%ss, prompt_len=%d)",
                self.model,
                self.timeout,
                len(prompt),
            )
            raise RuntimeError(f"Model did not respond within {self.timeout}s.") from exc


def build_text_generator(model_class: ModelClass = ModelClass.SMALL) -> TextGeneratorAPI:
    """Return the configured generator for *model_class*, queued or direct."""
    model = model_for_class(model_class)
    if settings.SUMMARY_USE_CELERY:
        _LOG.info("Using Celery text queue for %s/%s", settings.SUMMARY_API, model)
        return QueuedTextGenerator(settings.SUMMARY_API, model, timeout=settings.SUMMARY_TASK_TIMEOUT)
    return get_text_generator(settings.SUMMARY_API, model)
