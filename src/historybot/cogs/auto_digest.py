"""Periodically run one history plugin and deliver to its target channel."""

from __future__ import annotations

import logging

from discord.ext import commands, tasks

from historybot import settings
from historybot.delivery import ChannelPostSink, ResponseSink, WebhookSink, select_sinks
from historybot.plugin_config import HistoryPluginConfig

__all__ = ["AutoDigest"]

_LOG = logging.getLogger(__name__)


class AutoDigest(commands.Cog):
    """Runs the configured plugin every ``AUTO_DIGEST_INTERVAL_MINUTES``."""

    def __init__(
        self,
        bot: commands.Bot,
        plugin_name: str | None = None,
        period: str | None = None,
        interval_minutes: float | None = None,
    ) -> None:
        self.bot = bot
        self.plugin_name = plugin_name if plugin_name is not None else settings.AUTO_DIGEST_PLUGIN
        self.period = period or settings.AUTO_DIGEST_PERIOD
        self.runs = 0
        self.digest_loop.change_interval(
            minutes=interval_minutes or settings.AUTO_DIGEST_INTERVAL_MINUTES
        )

    async def cog_load(self) -> None:
        if self.plugin_name:
            self.digest_loop.start()
            _LOG.info("Auto digest enabled for %s every %s", self.plugin_name, self.period)
        else:
            _LOG.info("AUTO_DIGEST_PLUGIN not set; auto digest disabled")

    async def cog_unload(self) -> None:
        self.digest_loop.cancel()

    def _plugins_cog(self):
        return self.bot.get_cog("HistoryPlugins")

    def sinks_for(self, config: HistoryPluginConfig) -> list[ResponseSink]:
        """Configured sinks minus ``reply``/``thread``, which need a triggering message."""
        sinks = select_sinks(config, self.bot)
        if not sinks and config.target_channel_id is not None:
            if config.webhook_url or "webhook" in config.delivery:
                sinks.append(WebhookSink(self.bot, config.target_channel_id, config.name, config.webhook_url))
            else:
                sinks.append(ChannelPostSink(self.bot, config.target_channel_id))
        return sinks

    async def run_once(self) -> str | None:
        """Run the configured plugin one time; returns the delivered text."""
        plugins = self._plugins_cog()
        if plugins is None:
            _LOG.error("HistoryPlugins cog not loaded; skipping auto digest")
            return None
        config = plugins.get_plugin(self.plugin_name)
        if config is None:
            _LOG.error("Auto digest plugin %r is not configured", self.plugin_name)
            return None
        sinks = self.sinks_for(config)
        if not sinks:
            _LOG.error("Auto digest plugin %s has no channel to deliver to", config.name)
            return None

        _LOG.info("Running auto digest for %s (%s)", config.name, self.period)
        try:
            command = f"{config.command_prefix} {self.period}"
            text = await plugins.run_plugin(config, command, sinks)
        except Exception:  # noqa: BLE001
            _LOG.exception("Auto digest for %s failed", config.name)
            return None
        self.runs += 1
        _LOG.info("Auto digest completed: %.100s...", text)
        return text

    @tasks.loop(minutes=10)
    async def digest_loop(self) -> None:
        await self.run_once()

    @digest_loop.before_loop
    async def _before_digest_loop(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(AutoDigest(bot))
