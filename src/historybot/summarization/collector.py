"""Time-windowed, deduplicated history collection across a channel and its threads."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from .time_windows import LookbackWindow

_LOG = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_MESSAGES = 10_000


@dataclass(frozen=True)
class HistoryMessage:
    """Read-only view of a chat message as consumed by the digest pipeline."""

    id: int
    author_name: str
    content: str
    created_at: datetime
    embeds: tuple[str, ...] = ()
    attachments: tuple[str, ...] = ()
    thread_name: str | None = None
    channel_id: int | None = None


class MessageSource(Protocol):
    """Paginated access to a chat platform's message history."""

    async def ready(self) -> bool:
        """Wait (bounded) for the client to be usable; False means no data."""
        ...

    async def fetch_channel(self, channel_id: int) -> Any | None:
        ...

    async def fetch_page(
        self,
        channel: Any,
        *,
        before: int | None,
        limit: int,
    ) -> list[HistoryMessage]:
        """Return up to *limit* messages older than *before*, newest first."""
        ...

    async def active_threads(self, channel: Any) -> list[Any]:
        ...

    async def archived_threads(self, channel: Any) -> list[Any]:
        ...

    def thread_name(self, thread: Any) -> str:
        ...


class HistoryCollector:
    """Collects in-window messages from a channel and its discussion threads."""

    def __init__(self, source: MessageSource, page_size: int = DEFAULT_PAGE_SIZE):
        """
        Initialize collector.

        Args:
            source: Message source used for every fetch
            page_size: Messages requested per pagination call
        """
        self.source = source
        self.page_size = page_size

    async def collect(
        self,
        channel_id: int,
        window: LookbackWindow,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> list[HistoryMessage]:
        """
        Collect messages created inside *window* from a channel and its threads.

        The channel is paged backward from now until a page is empty, a page
        reaches past the window start, or *max_messages* is reached. Active
        then archived threads contribute one page each. Messages are keyed by
        id, so a message reachable from both scans is kept once (the thread
        scan runs last and its tagged copy wins).

        Returns:
            Deduplicated messages, oldest first
        """
        try:
            if not await self.source.ready():
                _LOG.error("Message source not ready; returning no messages for %s", channel_id)
                return []
            channel = await self.source.fetch_channel(channel_id)
        except Exception:  # noqa: BLE001
            _LOG.exception("Failed to fetch channel %s", channel_id)
            return []

        if channel is None:
            _LOG.error("Channel %s not found or not readable", channel_id)
            return []

        collected: dict[int, HistoryMessage] = {}
        await self._collect_channel_pages(channel, channel_id, window, max_messages, collected)

        for label, fetch_threads in (
            ("active", self.source.active_threads),
            ("archived", self.source.archived_threads),
        ):
            if len(collected) >= max_messages:
                break
            try:
                threads = await fetch_threads(channel)
            except Exception:  # noqa: BLE001
                _LOG.exception("Failed to list %s threads for channel %s", label, channel_id)
                continue
            await self._collect_threads(threads, label, window, max_messages, collected)

        _LOG.info(
            "Collected %d messages from channel %s (window %s -> %s, threads included)",
            len(collected),
            channel_id,
            window.start.isoformat(),
            window.end.isoformat(),
        )
        return sorted(collected.values(), key=lambda m: m.created_at)

    async def collect_many(
        self,
        channel_ids: Iterable[int],
        window: LookbackWindow,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> list[HistoryMessage]:
        """Collect each channel in turn and concatenate the results."""
        messages: list[HistoryMessage] = []
        for channel_id in channel_ids:
            channel_messages = await self.collect(channel_id, window, max_messages)
            _LOG.info("Fetched %d messages from channel %s", len(channel_messages), channel_id)
            messages.extend(channel_messages)
        return messages

    async def _collect_channel_pages(
        self,
        channel: Any,
        channel_id: int,
        window: LookbackWindow,
        max_messages: int,
        collected: dict[int, HistoryMessage],
    ) -> None:
        cursor: int | None = None
        while len(collected) < max_messages:
            try:
                page = await self.source.fetch_page(channel, before=cursor, limit=self.page_size)
            except Exception:  # noqa: BLE001
                _LOG.exception("Failed to fetch history page for channel %s", channel_id)
                return
            if not page:
                return

            reached_older = False
            for msg in page:
                if window.is_before(msg.created_at):
                    reached_older = True
                elif window.contains(msg.created_at) and len(collected) < max_messages:
                    collected[msg.id] = msg

            # Pages run newest to oldest, so nothing earlier can be in window.
            if reached_older:
                return
            cursor = min(msg.id for msg in page)
            _LOG.debug("Fetched %d messages so far from %s, paging before %s", len(collected), channel_id, cursor)

    async def _collect_threads(
        self,
        threads: list[Any],
        label: str,
        window: LookbackWindow,
        max_messages: int,
        collected: dict[int, HistoryMessage],
    ) -> None:
        for thread in threads:
            if len(collected) >= max_messages:
                return
            name = self.source.thread_name(thread)
            try:
                # Single page per thread; deeper thread history is not walked.
                page = await self.source.fetch_page(thread, before=None, limit=self.page_size)
            except Exception:  # noqa: BLE001
                _LOG.exception("Failed to fetch messages from %s thread %s", label, name)
                continue
            for msg in page:
                if len(collected) >= max_messages:
                    return
                if window.contains(msg.created_at):
                    collected[msg.id] = dataclasses.replace(msg, thread_name=name)
