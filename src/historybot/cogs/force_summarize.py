"""Mention-triggered conversation summaries with an inferred date range."""

from __future__ import annotations

import io
import logging
import re
import time
from collections.abc import Sequence

import discord
from discord.ext import commands

from historybot import settings
from historybot.delivery import split_message
from historybot.summarization import (
    DateRange,
    DateRangeResolver,
    HistoryCollector,
    IncrementalSummarizer,
    RequestGuard,
    format_recent_messages,
    run_history_digest,
)
from historybot.summarization.pipeline import DigestResult
from historybot.utils.discord_utils import get_display_name

from .digest_common import build_collector, build_summarizer, record_digest

__all__ = ["ForceSummarize", "is_summary_command", "is_long_summary"]

_LOG = logging.getLogger(__name__)

SUMMARY_COMMANDS = (
    "lassan",
    "tldr please",
    "tldr",
    "tl;dr",
    "summarize",
    "custom summarize",
    "create a summary",
    "make a summary",
    "custom summary",
    "custom recap",
    "summarize for me",
    "give me a recap",
    "provide a summary",
    "summary",
    "recap",
)

_COMMAND_RE = re.compile(
    "|".join(rf"(?<!\w){re.escape(cmd)}(?!\w)" for cmd in SUMMARY_COMMANDS),
    re.IGNORECASE,
)

ACK_TEXT = "Starting summarization process... This might take a moment."
ALREADY_RUNNING_TEXT = "Already processing a summary request"
CONTEXT_MESSAGE_LIMIT = 20


def is_summary_command(text: str | None) -> bool:
    if not text:
        return False
    return _COMMAND_RE.search(text.strip()) is not None


def is_long_summary(summary: str) -> bool:
    """Long summaries go out as a file; short ones are replied inline."""
    return len(summary.split("\n")) >= 4 and len(summary.split()) >= 100


def _fmt(ts) -> str:
    return ts.strftime("%Y-%m-%d %H:%M UTC")


def describe_channels(channel_ids: Sequence[int]) -> str:
    if len(channel_ids) == 1:
        return f"channel {channel_ids[0]}"
    return "channels " + ", ".join(str(cid) for cid in channel_ids)


def summary_file_text(summary: str, date_range: DateRange, channel_ids: Sequence[int]) -> str:
    return (
        "# Conversation Summary\n\n"
        f"From: {_fmt(date_range.start)}\n"
        f"To: {_fmt(date_range.end)}\n"
        f"Channels: {describe_channels(channel_ids)}\n\n"
        f"## Objective\n{date_range.objective}\n\n"
        f"## Summary\n{summary}"
    )


class ForceSummarize(commands.Cog):
    """Summarize recent conversation when the bot is mentioned with a summary keyword."""

    def __init__(
        self,
        bot: commands.Bot,
        guard: RequestGuard | None = None,
        collector: HistoryCollector | None = None,
        summarizer: IncrementalSummarizer | None = None,
        resolver: DateRangeResolver | None = None,
        source_channel_ids: Sequence[int] | None = None,
    ) -> None:
        self.bot = bot
        self.guard = guard or RequestGuard(settings.FORCE_SUMMARIZE_GUARD_SECONDS)
        self.collector = collector or build_collector(bot)
        self.summarizer = summarizer or build_summarizer()
        self.resolver = resolver or DateRangeResolver(
            self.summarizer.llm,
            default_lookback_hours=settings.FORCE_SUMMARIZE_DEFAULT_HOURS,
            max_lookback_hours=settings.FORCE_SUMMARIZE_MAX_HOURS,
        )
        if source_channel_ids is None:
            source_channel_ids = settings.FORCE_SUMMARIZE_SOURCE_CHANNELS
        self.source_channel_ids = list(source_channel_ids)

    def is_trigger(self, message: discord.Message) -> bool:
        if message.author.bot or not message.content:
            return False
        bot_user = self.bot.user
        mentioned = bot_user is not None and any(u.id == bot_user.id for u in message.mentions)
        return mentioned and is_summary_command(message.content)

    def source_channels_for(self, date_range: DateRange, current_channel_id: int) -> list[int]:
        """Inferred channels, else configured ones; the current channel is always included."""
        channel_ids = list(date_range.channels) or list(self.source_channel_ids)
        if current_channel_id not in channel_ids:
            channel_ids.append(current_channel_id)
        return channel_ids

    async def _recent_context(self, message: discord.Message) -> str:
        source = self.collector.source
        try:
            channel = await source.fetch_channel(message.channel.id)
            if channel is not None:
                recent = await source.fetch_page(channel, before=None, limit=CONTEXT_MESSAGE_LIMIT)
                if recent:
                    return format_recent_messages(recent)
        except Exception:  # noqa: BLE001
            _LOG.exception("Failed to load recent messages for date range inference")
        return f"{get_display_name(message.author)}: {message.content}"

    async def _send_summary(
        self,
        message: discord.Message,
        result: DigestResult,
        date_range: DateRange,
    ) -> str:
        summary = result.text.strip()
        if result.empty or summary == settings.SUMMARY_FAILED_TEXT:
            await message.reply(summary, mention_author=False)
            return summary

        record_digest("force_summarize", result, objective=date_range.objective)

        if not is_long_summary(summary):
            text = f"# Conversation Summary\n\n{summary}"
            for chunk in split_message(text):
                await message.reply(chunk, mention_author=False)
            return text

        channel_ids = list(result.channel_ids)
        body = summary_file_text(summary, date_range, channel_ids).encode("utf-8")
        filename = f"conversation_summary_{int(time.time() * 1000)}.txt"
        text = (
            f"I've created a detailed summary of the conversation from {_fmt(date_range.start)} "
            f"to {_fmt(date_range.end)} in {describe_channels(channel_ids)}."
        )
        await message.reply(
            text,
            file=discord.File(io.BytesIO(body), filename=filename),
            mention_author=False,
        )
        return text

    async def summarize_request(self, message: discord.Message) -> str:
        """
        Run one force-summarize request end to end.

        Returns:
            The text sent back to the user; never raises
        """
        if not self.guard.try_acquire():
            _LOG.info("Summary already in progress; skipping request in channel %s", message.channel.id)
            return ALREADY_RUNNING_TEXT

        try:
            try:
                await message.reply(ACK_TEXT, mention_author=False)
            except discord.HTTPException:
                _LOG.warning("Could not acknowledge summarize request in channel %s", message.channel.id)
            context = await self._recent_context(message)
            date_range = await self.resolver.resolve(context, get_display_name(message.author))
            channel_ids = self.source_channels_for(date_range, message.channel.id)
            _LOG.info(
                "Force summarize: %s -> %s over %s (%s)",
                date_range.start.isoformat(),
                date_range.end.isoformat(),
                channel_ids,
                date_range.state.value,
            )
            result = await run_history_digest(
                self.collector,
                self.summarizer,
                channel_ids,
                date_range.window,
                date_range.objective,
                max_messages=settings.HISTORY_MAX_MESSAGES,
            )
            return await self._send_summary(message, result, date_range)
        except Exception:  # noqa: BLE001
            _LOG.exception("Force summarize failed in channel %s", message.channel.id)
            try:
                await message.reply(settings.SUMMARY_ERROR_TEXT, mention_author=False)
            except discord.HTTPException:
                _LOG.exception("Failed to send summarize error reply")
            return settings.SUMMARY_ERROR_TEXT
        finally:
            self.guard.release()

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if not self.is_trigger(message):
            return
        await self.summarize_request(message)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ForceSummarize(bot))
