"""History plugins: ``<prefix> <period>`` commands that digest configured channels."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import discord
from discord.ext import commands

from historybot import settings
from historybot.delivery import CallbackSink, ResponseSink, select_sinks
from historybot.plugin_config import HistoryPluginConfig, load_plugin_configs
from historybot.summarization import (
    HistoryCollector,
    IncrementalSummarizer,
    LookbackWindow,
    parse_time_command,
    run_history_digest,
)
from historybot.text_generators import ModelClass

from .digest_common import build_collector, build_summarizer, deliver_all, record_digest

__all__ = ["HistoryPlugins"]

_LOG = logging.getLogger(__name__)


def acknowledgement_text(config: HistoryPluginConfig) -> str:
    return f"{config.name} is fetching Discord message history... This might take a moment."


class HistoryPlugins(commands.Cog):
    """Runs the configured history plugins when their command appears in chat."""

    def __init__(
        self,
        bot: commands.Bot,
        configs: Sequence[HistoryPluginConfig] | None = None,
        collector: HistoryCollector | None = None,
        summarizer: IncrementalSummarizer | None = None,
    ) -> None:
        self.bot = bot
        if configs is None:
            configs = load_plugin_configs(settings.HISTORY_PLUGINS_FILE)
        self.configs = list(configs)
        self.collector = collector or build_collector(bot)
        self.summarizer = summarizer
        self._summarizers: dict[ModelClass, IncrementalSummarizer] = {}

    def summarizer_for(self, config: HistoryPluginConfig) -> IncrementalSummarizer:
        """Injected summarizer if any, else one per model class, built on first use."""
        if self.summarizer is not None:
            return self.summarizer
        if config.model_class not in self._summarizers:
            self._summarizers[config.model_class] = build_summarizer(model_class=config.model_class)
        return self._summarizers[config.model_class]

    def find_plugin(self, text: str) -> HistoryPluginConfig | None:
        for config in self.configs:
            if config.matches(text):
                return config
        return None

    def get_plugin(self, name: str) -> HistoryPluginConfig | None:
        wanted = name.strip().lower()
        for config in self.configs:
            if config.name.lower() == wanted:
                return config
        return None

    async def run_plugin(
        self,
        config: HistoryPluginConfig,
        text: str,
        sinks: Sequence[ResponseSink],
        error_sink: ResponseSink | None = None,
    ) -> str:
        """
        Digest the plugin's channels for the period found in *text*.

        Args:
            config: Plugin to run
            text: Command text; the period is read from it (default 1d)
            sinks: Where the finished digest goes
            error_sink: Where a failure message goes, if anywhere

        Returns:
            The text that was delivered (digest or error message)
        """
        period = parse_time_command(text, config.trigger)
        _LOG.info("%s digest requested for %s (%s hours)", config.name, period.display, period.hours)
        try:
            window = LookbackWindow.last(period.hours)
            result = await run_history_digest(
                self.collector,
                self.summarizer_for(config),
                config.source_channel_ids,
                window,
                config.prompt,
                max_messages=config.max_messages,
            )
        except Exception as exc:  # noqa: BLE001
            _LOG.exception("%s digest failed", config.name)
            error_text = f"Error fetching {config.name} history: {exc}"
            if error_sink is not None:
                await error_sink.deliver(error_text)
            return error_text

        response = f"# {config.name} History Summary ({period.display})\n\n{result.text}"
        delivered = await deliver_all(sinks, response)
        _LOG.info("%s digest delivered to %d of %d sink(s)", config.name, delivered, len(sinks))
        record_digest(config.name, result, objective=config.prompt)
        return response

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.content:
            return
        config = self.find_plugin(message.content)
        if config is None:
            return

        try:
            await message.reply(acknowledgement_text(config), mention_author=False)
        except discord.HTTPException:
            _LOG.warning("Could not acknowledge %s command in channel %s", config.name, message.channel.id)

        sinks = select_sinks(config, self.bot, reply=message.reply, message=message)
        await self.run_plugin(config, message.content, sinks, error_sink=CallbackSink(message.reply))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(HistoryPlugins(bot))
