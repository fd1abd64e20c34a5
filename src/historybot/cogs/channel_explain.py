"""``disexplain <question> <#channel> [period]``: answer a question about a channel's history."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import discord
from discord.ext import commands

from historybot import settings
from historybot.delivery import ResponseSink, WebhookSink
from historybot.summarization import (
    HistoryCollector,
    IncrementalSummarizer,
    LookbackWindow,
    TimePeriod,
    parse_time_command,
    run_history_digest,
)
from historybot.summarization.time_windows import PERIOD_PATTERN

from .digest_common import build_collector, build_summarizer, record_digest

__all__ = ["ChannelExplain", "ExplainRequest", "parse_explain_command"]

_LOG = logging.getLogger(__name__)

WEBHOOK_SENDER = "DisExplain"
DEFAULT_PERIOD = "4h"
USAGE_TEXT = (
    "Usage: `disexplain <question> <#channel> [period]`, e.g. "
    "`disexplain What are the main topics? #general 4h`"
)

COMMAND_PREFIX_RE = re.compile(r"^disexplain\b", re.IGNORECASE)
CHANNEL_MENTION_RE = re.compile(r"<#(\d+)>")
TRAILING_PERIOD_RE = re.compile(rf"\s+({PERIOD_PATTERN})\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class ExplainRequest:
    question: str
    channel_id: int
    period: TimePeriod


def parse_explain_command(text: str) -> ExplainRequest | None:
    """
    Parse a disexplain command; None when it is not one or has no channel.

    The channel mention may appear anywhere after the prefix. A trailing
    period token is taken as the lookback and the remaining text is the
    question.
    """
    text = (text or "").strip()
    prefix = COMMAND_PREFIX_RE.match(text)
    if not prefix:
        return None
    rest = text[prefix.end():]
    channel = CHANNEL_MENTION_RE.search(rest)
    if not channel:
        return None
    rest = " " + " ".join(CHANNEL_MENTION_RE.sub(" ", rest).split())
    period_match = TRAILING_PERIOD_RE.search(rest)
    if period_match:
        rest = rest[: period_match.start()]
    period = parse_time_command(period_match.group(1) if period_match else DEFAULT_PERIOD, r"^(.+)$")
    return ExplainRequest(
        question=rest.strip(),
        channel_id=int(channel.group(1)),
        period=period,
    )


def explain_objective(request: ExplainRequest) -> str:
    return (
        "Analyze the following Discord conversation and answer this question: "
        f"{request.question}\n\nThe messages cover the last {request.period.display}."
    )


class ChannelExplain(commands.Cog):
    """Posts an analysis of a channel's recent history back into that channel."""

    def __init__(
        self,
        bot: commands.Bot,
        collector: HistoryCollector | None = None,
        summarizer: IncrementalSummarizer | None = None,
    ) -> None:
        self.bot = bot
        self.collector = collector or build_collector(bot)
        self.summarizer = summarizer or build_summarizer()

    def sink_for(self, channel_id: int) -> ResponseSink:
        return WebhookSink(self.bot, channel_id, WEBHOOK_SENDER)

    async def explain(self, request: ExplainRequest) -> str:
        """Run the analysis and post it; returns the status line for the requester."""
        try:
            window = LookbackWindow.last(request.period.hours)
            result = await run_history_digest(
                self.collector,
                self.summarizer,
                [request.channel_id],
                window,
                explain_objective(request),
                max_messages=settings.HISTORY_MAX_MESSAGES,
            )
            if not await self.sink_for(request.channel_id).deliver(result.text):
                return f"Error analyzing channel: could not post to <#{request.channel_id}>"
            record_digest(WEBHOOK_SENDER, result, objective=request.question)
        except Exception as exc:  # noqa: BLE001
            _LOG.exception("Channel explain failed for %s", request.channel_id)
            return f"Error analyzing channel: {exc}"
        return f"Analysis complete. Sent to channel <#{request.channel_id}>"

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.content:
            return
        if not message.content.lstrip().lower().startswith("disexplain"):
            return
        request = parse_explain_command(message.content)
        if request is None:
            try:
                await message.reply(USAGE_TEXT, mention_author=False)
            except discord.HTTPException:
                _LOG.warning("Could not send disexplain usage in channel %s", message.channel.id)
            return
        _LOG.info(
            "disexplain for channel %s over %s: %s",
            request.channel_id,
            request.period.display,
            request.question,
        )
        status = await self.explain(request)
        try:
            await message.reply(status, mention_author=False)
        except discord.HTTPException:
            _LOG.warning("Could not send disexplain status in channel %s", message.channel.id)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ChannelExplain(bot))
