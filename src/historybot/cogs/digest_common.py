"""Helpers shared by the digest cogs."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import discord

from historybot import digest_db, settings
from historybot.delivery import ResponseSink
from historybot.discord_source import DiscordMessageSource
from historybot.llm_client import build_text_generator
from historybot.summarization import HistoryCollector, IncrementalSummarizer, LLMProtocol
from historybot.summarization.pipeline import DigestResult
from historybot.text_generators import ModelClass

_LOG = logging.getLogger(__name__)


def build_collector(bot: discord.Client) -> HistoryCollector:
    source = DiscordMessageSource(bot, ready_timeout=settings.CLIENT_READY_TIMEOUT)
    return HistoryCollector(source, page_size=settings.HISTORY_PAGE_SIZE)


def build_summarizer(
    llm: LLMProtocol | None = None,
    model_class: ModelClass = ModelClass.SMALL,
) -> IncrementalSummarizer:
    return IncrementalSummarizer(
        llm or build_text_generator(model_class),
        chunk_size=settings.SUMMARY_CHUNK_SIZE,
        chunk_overlap=0,
        delay_seconds=settings.SUMMARY_CHUNK_DELAY_SECONDS,
    )


async def deliver_all(sinks: Iterable[ResponseSink], text: str) -> int:
    """Deliver *text* to every sink in order; returns how many succeeded."""
    delivered = 0
    for sink in sinks:
        if await sink.deliver(text):
            delivered += 1
        else:
            _LOG.warning("Delivery through %s failed", type(sink).__name__)
    return delivered


def record_digest(
    source: str,
    result: DigestResult,
    objective: str | None = None,
) -> int | None:
    """Store a digest; failures are logged and never surfaced."""
    if result.empty:
        return None
    try:
        return digest_db.log_digest(
            source=source,
            channel_ids=result.channel_ids,
            window_start=result.window.start,
            window_end=result.window.end,
            message_count=result.message_count,
            summary=result.text,
            objective=objective,
        )
    except Exception:  # noqa: BLE001
        _LOG.exception("Failed to record digest for %s", source)
        return None
