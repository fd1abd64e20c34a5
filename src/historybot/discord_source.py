"""discord.py-backed message source for the history collector."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import discord

from historybot.summarization.collector import HistoryMessage
from historybot.utils.discord_utils import embed_text, get_display_name, resolve_channel

_LOG = logging.getLogger(__name__)


def history_message_from_discord(message: discord.Message) -> HistoryMessage:
    """Convert a discord.py message into the pipeline's read-only view."""
    embeds = tuple(text for text in (embed_text(e) for e in message.embeds or []) if text)
    attachments = tuple(
        a.filename or a.url for a in getattr(message, "attachments", None) or []
    )
    channel = message.channel
    channel_id = getattr(channel, "parent_id", None) or getattr(channel, "id", None)
    return HistoryMessage(
        id=message.id,
        author_name=get_display_name(message.author),
        content=message.content or "",
        created_at=message.created_at,
        embeds=embeds,
        attachments=attachments,
        channel_id=channel_id,
    )


class DiscordMessageSource:
    """Reads channel and thread history through a logged-in discord.py client."""

    def __init__(self, client: discord.Client, ready_timeout: float = 10.0) -> None:
        self.client = client
        self.ready_timeout = ready_timeout

    async def ready(self) -> bool:
        if self.client.is_ready():
            return True
        _LOG.info("Discord client not ready, waiting up to %.0fs", self.ready_timeout)
        try:
            await asyncio.wait_for(self.client.wait_until_ready(), timeout=self.ready_timeout)
        except asyncio.TimeoutError:
            _LOG.error("Discord client failed to become ready within %.0fs", self.ready_timeout)
            return False
        return self.client.is_ready()

    async def fetch_channel(self, channel_id: int) -> Any | None:
        channel = await resolve_channel(self.client, channel_id)
        if channel is None or not hasattr(channel, "history"):
            return None
        return channel

    async def fetch_page(
        self,
        channel: Any,
        *,
        before: int | None,
        limit: int,
    ) -> list[HistoryMessage]:
        cursor = discord.Object(id=before) if before is not None else None
        return [
            history_message_from_discord(msg)
            async for msg in channel.history(limit=limit, before=cursor)
        ]

    async def active_threads(self, channel: Any) -> list[Any]:
        guild = getattr(channel, "guild", None)
        if guild is None:
            return list(getattr(channel, "threads", None) or [])
        threads = await guild.active_threads()
        return [t for t in threads if t.parent_id == channel.id]

    async def archived_threads(self, channel: Any) -> list[Any]:
        if not hasattr(channel, "archived_threads"):
            return []
        return [thread async for thread in channel.archived_threads(limit=None)]

    def thread_name(self, thread: Any) -> str:
        return getattr(thread, "name", None) or str(getattr(thread, "id", "thread"))
