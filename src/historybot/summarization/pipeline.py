"""Shared collect -> format -> summarize pipeline used by every digest command."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from historybot.settings import NO_MESSAGES_TEXT

from .collector import DEFAULT_MAX_MESSAGES, HistoryCollector
from .summarizer import IncrementalSummarizer
from .time_windows import LookbackWindow
from .transcript import format_transcript

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class DigestResult:
    text: str
    message_count: int
    window: LookbackWindow
    channel_ids: tuple[int, ...]

    @property
    def empty(self) -> bool:
        return self.message_count == 0


async def run_history_digest(
    collector: HistoryCollector,
    summarizer: IncrementalSummarizer,
    channel_ids: Sequence[int],
    window: LookbackWindow,
    objective: str,
    max_messages: int = DEFAULT_MAX_MESSAGES,
    include_channel: bool | None = None,
) -> DigestResult:
    """
    Collect history for *channel_ids* inside *window* and summarize it.

    Args:
        collector: History collector bound to a message source
        summarizer: Summarizer bound to a text generator
        channel_ids: Channels scanned in order, each with its threads
        window: Lookback window shared by every channel
        objective: Instructions describing what the summary should capture
        max_messages: Per-channel cap on collected messages
        include_channel: Label transcript lines with channel ids; defaults to
            True when more than one channel is scanned

    Returns:
        DigestResult with the summary (or the no-messages text)
    """
    channels = tuple(channel_ids)
    messages = await collector.collect_many(channels, window, max_messages)
    _LOG.info("Fetched %d messages in total from %d channel(s)", len(messages), len(channels))

    if not messages:
        return DigestResult(NO_MESSAGES_TEXT, 0, window, channels)

    if include_channel is None:
        include_channel = len(channels) > 1
    transcript = format_transcript(messages, include_channel=include_channel)
    text = await summarizer.summarize(transcript, objective)
    return DigestResult(text, len(messages), window, channels)
