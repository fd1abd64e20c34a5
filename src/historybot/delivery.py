"""Delivery sinks for finished digests: reply, channel post, webhook, thread."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

import discord

from historybot.settings import MAX_MESSAGE_LENGTH
from historybot.utils.discord_utils import resolve_channel

if TYPE_CHECKING:
    from historybot.plugin_config import HistoryPluginConfig

_LOG = logging.getLogger(__name__)

MANAGED_WEBHOOK_NAME = "historybot digest"
THREAD_AUTO_ARCHIVE_MINUTES = 1440

_ALLOWED_MENTIONS = discord.AllowedMentions(everyone=False, users=True, roles=True, replied_user=True)


def split_message(content: str | None, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into Discord-sized chunks, preferring line boundaries.

    Lines longer than ``max_length`` are hard-split. Blank chunks are dropped.
    """
    if not content:
        return []
    if len(content) <= max_length:
        return [content] if content.strip() else []

    chunks: list[str] = []
    buffer = ""
    for line in content.split("\n"):
        while len(line) > max_length:
            if buffer:
                chunks.append(buffer)
                buffer = ""
            chunks.append(line[:max_length])
            line = line[max_length:]
        if buffer and len(buffer) + len(line) + 1 > max_length:
            chunks.append(buffer)
            buffer = line
        else:
            buffer = f"{buffer}\n{line}" if buffer else line
    if buffer:
        chunks.append(buffer)
    return [chunk for chunk in chunks if chunk.strip()]


async def _send_chunks(
    send: Callable[..., Awaitable[Any]],
    text: str,
    files: list[discord.File] | None,
    **kwargs: Any,
) -> list[Any]:
    """Send *text* chunk by chunk; files ride on the last chunk."""
    chunks = split_message(text) or [""]
    sent: list[Any] = []
    for index, chunk in enumerate(chunks):
        last = index == len(chunks) - 1
        if not chunk and not (last and files):
            continue
        send_kwargs = dict(kwargs)
        if last and files:
            send_kwargs["files"] = files
        sent.append(await send(chunk, **send_kwargs))
    return sent


class ResponseSink(Protocol):
    """Somewhere a finished digest can be delivered."""

    async def deliver(self, text: str, *, files: list[discord.File] | None = None) -> bool:
        """Deliver *text*; returns False (never raises) on transport failure."""
        ...


class CallbackSink:
    """Direct reply through a coroutine such as ``message.reply`` or ``channel.send``."""

    def __init__(self, callback: Callable[..., Awaitable[Any]]) -> None:
        self.callback = callback

    async def deliver(self, text: str, *, files: list[discord.File] | None = None) -> bool:
        try:
            await _send_chunks(self.callback, text, files)
        except Exception:  # noqa: BLE001
            _LOG.exception("Failed to deliver reply")
            return False
        return True


class ChannelPostSink:
    """Posts into a configured channel by id."""

    def __init__(self, bot: discord.Client, channel_id: int) -> None:
        self.bot = bot
        self.channel_id = channel_id

    async def deliver(self, text: str, *, files: list[discord.File] | None = None) -> bool:
        channel = await resolve_channel(self.bot, self.channel_id)
        if channel is None or not hasattr(channel, "send"):
            _LOG.error("Target channel %s not found or not messageable", self.channel_id)
            return False
        try:
            await _send_chunks(channel.send, text, files, allowed_mentions=_ALLOWED_MENTIONS)
        except (discord.Forbidden, discord.HTTPException):
            _LOG.exception("Failed to post digest to channel %s", self.channel_id)
            return False
        return True


class WebhookSink:
    """Posts under a custom display name through a channel webhook.

    A configured webhook URL is used as-is. Otherwise the bot looks for its
    managed webhook in the channel and creates it when missing.
    """

    def __init__(
        self,
        bot: discord.Client,
        channel_id: int,
        sender_name: str,
        webhook_url: str | None = None,
    ) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.sender_name = sender_name
        self.webhook_url = webhook_url

    async def _get_webhook(self) -> discord.Webhook | None:
        if self.webhook_url:
            return discord.Webhook.from_url(self.webhook_url, client=self.bot)

        channel = await resolve_channel(self.bot, self.channel_id)
        if channel is None or not hasattr(channel, "webhooks"):
            _LOG.error("Channel %s cannot host webhooks", self.channel_id)
            return None

        bot_user_id = getattr(self.bot.user, "id", None)
        for webhook in await channel.webhooks():
            owner_id = getattr(webhook.user, "id", None)
            if webhook.name == MANAGED_WEBHOOK_NAME and (owner_id is None or owner_id == bot_user_id):
                return webhook

        _LOG.info("Creating managed webhook in channel %s", self.channel_id)
        return await channel.create_webhook(
            name=MANAGED_WEBHOOK_NAME,
            reason="History digest delivery",
        )

    async def deliver(self, text: str, *, files: list[discord.File] | None = None) -> bool:
        try:
            webhook = await self._get_webhook()
            if webhook is None:
                return False
            await _send_chunks(
                webhook.send,
                text,
                files,
                username=self.sender_name,
                allowed_mentions=_ALLOWED_MENTIONS,
                wait=True,
            )
        except (discord.Forbidden, discord.HTTPException, ValueError):
            _LOG.exception("Webhook delivery to channel %s failed", self.channel_id)
            return False
        return True


class ThreadReplySink:
    """Replies inside the thread attached to a message, starting it if needed."""

    def __init__(
        self,
        bot: discord.Client,
        channel_id: int,
        message_id: int,
        thread_name: str | None = None,
        create_if_missing: bool = True,
    ) -> None:
        self.bot = bot
        self.channel_id = channel_id
        self.message_id = message_id
        self.thread_name = thread_name
        self.create_if_missing = create_if_missing

    async def _get_thread(self) -> discord.Thread | None:
        channel = await resolve_channel(self.bot, self.channel_id)
        if channel is None or not hasattr(channel, "fetch_message"):
            _LOG.error("Channel %s not found for thread reply", self.channel_id)
            return None
        message = await channel.fetch_message(self.message_id)
        thread = message.thread
        if thread is None and self.create_if_missing:
            name = self.thread_name or f"Thread for message {str(self.message_id)[:8]}"
            thread = await message.create_thread(
                name=name[:100],
                auto_archive_duration=THREAD_AUTO_ARCHIVE_MINUTES,
            )
            _LOG.info("Created thread %s (%s)", thread.name, thread.id)
        return thread

    async def deliver(self, text: str, *, files: list[discord.File] | None = None) -> bool:
        try:
            thread = await self._get_thread()
            if thread is None:
                _LOG.warning("No thread for message %s and creation not requested", self.message_id)
                return False
            await _send_chunks(thread.send, text, files, allowed_mentions=_ALLOWED_MENTIONS)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException):
            _LOG.exception("Thread reply for message %s failed", self.message_id)
            return False
        return True


def select_sinks(
    config: HistoryPluginConfig,
    bot: discord.Client,
    reply: Callable[..., Awaitable[Any]] | None = None,
    message: discord.Message | None = None,
) -> list[ResponseSink]:
    """Pick the sinks for one request from the plugin's delivery modes."""
    sinks: list[ResponseSink] = []
    for mode in config.delivery:
        if mode == "reply":
            if reply is not None:
                sinks.append(CallbackSink(reply))
        elif mode == "channel":
            if config.target_channel_id is not None:
                sinks.append(ChannelPostSink(bot, config.target_channel_id))
        elif mode == "webhook":
            if config.target_channel_id is not None or config.webhook_url:
                sinks.append(
                    WebhookSink(
                        bot,
                        config.target_channel_id or 0,
                        config.name,
                        webhook_url=config.webhook_url,
                    )
                )
        elif mode == "thread":
            if message is not None:
                sinks.append(
                    ThreadReplySink(
                        bot,
                        message.channel.id,
                        message.id,
                        thread_name=f"{config.name} summary",
                    )
                )
    return sinks
