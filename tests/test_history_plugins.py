"""Tests for the history plugins cog."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord.ext import commands

from historybot import digest_db
from historybot.cogs.history_plugins import HistoryPlugins, acknowledgement_text
from historybot.plugin_config import HistoryPluginConfig
from historybot.settings import NO_MESSAGES_TEXT
from historybot.summarization import HistoryCollector, IncrementalSummarizer
from historybot.summarization.time_windows import utcnow
from historybot.text_generators import ModelClass

from conftest import ScriptedLLM, make_message, no_sleep


def _config(**overrides):
    data = {"name": "Quantfase", "command_prefix": "quantfase run on", "source_channel_ids": ["1"]}
    data.update(overrides)
    return HistoryPluginConfig.from_dict(data)


def _message(content):
    message = MagicMock()
    message.id = 4242
    message.content = content
    message.author.bot = False
    message.channel.id = 77
    message.reply = AsyncMock()
    return message


def _cog(bot, source, llm, configs=None, collector=None):
    return HistoryPlugins(
        bot,
        configs=configs if configs is not None else [_config()],
        collector=collector or HistoryCollector(source),
        summarizer=IncrementalSummarizer(llm, sleep=no_sleep),
    )


@pytest.fixture
def bot():
    return commands.Bot(command_prefix="!", intents=discord.Intents.none())


class TestOnMessage:
    @pytest.mark.asyncio
    async def test_ignores_unrelated_messages(self, bot, source):
        cog = _cog(bot, source, ScriptedLLM("unused"))
        message = _message("good morning")

        await cog.on_message(message)

        message.reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_ignores_bots(self, bot, source):
        cog = _cog(bot, source, ScriptedLLM("unused"))
        message = _message("quantfase run on 4h")
        message.author.bot = True

        await cog.on_message(message)

        message.reply.assert_not_called()

    @pytest.mark.asyncio
    async def test_acknowledges_then_replies_with_digest(self, bot, source):
        now = utcnow()
        source.add_channel(1, [make_message(1, 30, "shipped v2", now=now), make_message(2, 600, now=now)])
        llm = ScriptedLLM("v2 shipped")
        cog = _cog(bot, source, llm)
        message = _message("quantfase run on 4h")

        await cog.on_message(message)

        replies = [call.args[0] for call in message.reply.await_args_list]
        assert replies == [
            acknowledgement_text(cog.configs[0]),
            "# Quantfase History Summary (4h)\n\nv2 shipped",
        ]
        assert "Quantfase is fetching Discord message history" in replies[0]
        assert "shipped v2" in llm.prompts[0]
        assert "message 2" not in llm.prompts[0]

        stored = digest_db.recent_digests("Quantfase")
        assert len(stored) == 1
        assert stored[0]["message_count"] == 1
        assert stored[0]["channel_ids"] == [1]

    @pytest.mark.asyncio
    async def test_default_period_is_one_day(self, bot, source):
        source.add_channel(1, [make_message(1, 20 * 60, "old but in range", now=utcnow())])
        cog = _cog(bot, source, ScriptedLLM("digest"))
        message = _message("quantfase run on")

        await cog.on_message(message)

        assert message.reply.await_args_list[-1].args[0].startswith("# Quantfase History Summary (1d)")

    @pytest.mark.asyncio
    async def test_no_messages(self, bot, source):
        source.add_channel(1, [])
        cog = _cog(bot, source, ScriptedLLM("unused"))
        message = _message("quantfase run on 2h")

        await cog.on_message(message)

        assert NO_MESSAGES_TEXT in message.reply.await_args_list[-1].args[0]
        assert digest_db.recent_digests() == []

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, bot, source):
        collector = MagicMock()
        collector.collect_many = AsyncMock(side_effect=RuntimeError("kaput"))
        cog = _cog(bot, source, ScriptedLLM("unused"), collector=collector)
        message = _message("quantfase run on 4h")

        await cog.on_message(message)

        assert message.reply.await_args_list[-1].args[0] == "Error fetching Quantfase history: kaput"


class TestRunPlugin:
    @pytest.mark.asyncio
    async def test_channel_delivery(self, mock_bot, source):
        target = MagicMock()
        target.id = 2
        target.send = AsyncMock()
        mock_bot.get_channel = MagicMock(return_value=target)
        config = _config(target_channel_id="2", delivery=["channel"])
        source.add_channel(1, [make_message(1, 5, "hello", now=utcnow())])
        cog = _cog(mock_bot, source, ScriptedLLM("digest"), configs=[config])

        from historybot.delivery import select_sinks

        text = await cog.run_plugin(config, "quantfase run on 1w", select_sinks(config, mock_bot))

        assert text == "# Quantfase History Summary (1w)\n\ndigest"
        target.send.assert_awaited_once()
        assert target.send.await_args.args[0] == text

    def test_get_plugin_by_name(self, bot, source):
        cog = _cog(bot, source, ScriptedLLM("x"), configs=[_config(), _config(name="Dyno", command_prefix="")])
        assert cog.get_plugin("dyno").command_prefix == "dyno run on"
        assert cog.get_plugin("missing") is None


class TestSummarizerFor:
    def test_builds_one_summarizer_per_model_class(self, bot, monkeypatch):
        built = []

        def fake_build(llm=None, model_class=ModelClass.SMALL):
            built.append(model_class)
            return IncrementalSummarizer(ScriptedLLM("x"), sleep=no_sleep)

        monkeypatch.setattr("historybot.cogs.history_plugins.build_summarizer", fake_build)
        small = _config()
        large = _config(name="Telebug", command_prefix="", model_class="large")
        cog = HistoryPlugins(bot, configs=[small, large], collector=MagicMock())

        first = cog.summarizer_for(small)
        assert cog.summarizer_for(small) is first
        assert cog.summarizer_for(large) is not first
        assert built == [ModelClass.SMALL, ModelClass.LARGE]

    def test_injected_summarizer_serves_every_plugin(self, bot, source):
        cog = _cog(bot, source, ScriptedLLM("x"))
        large = _config(name="Telebug", command_prefix="", model_class="large")
        assert cog.summarizer_for(large) is cog.summarizer
