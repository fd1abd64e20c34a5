"""Tests for message splitting and the delivery sinks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from historybot.delivery import (
    MANAGED_WEBHOOK_NAME,
    THREAD_AUTO_ARCHIVE_MINUTES,
    CallbackSink,
    ChannelPostSink,
    ThreadReplySink,
    WebhookSink,
    select_sinks,
    split_message,
)
from historybot.plugin_config import HistoryPluginConfig


def _http_error(status=500):
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return discord.HTTPException(response, "boom")


class FakeChannel:
    def __init__(self, channel_id=555, webhooks=None):
        self.id = channel_id
        self.sent = []
        self._webhooks = list(webhooks or [])
        self.created = []

    async def send(self, content, **kwargs):
        self.sent.append((content, kwargs))

    async def webhooks(self):
        return list(self._webhooks)

    async def create_webhook(self, name, reason=None):
        hook = FakeWebhook(name)
        self.created.append(hook)
        self._webhooks.append(hook)
        return hook


class FakeWebhook:
    def __init__(self, name, owner_id=None):
        self.name = name
        self.user = MagicMock(id=owner_id) if owner_id is not None else None
        self.sent = []

    async def send(self, content, **kwargs):
        self.sent.append((content, kwargs))


def _bot_with(channel):
    bot = MagicMock()
    bot.user = MagicMock(id=999)
    bot.get_channel = MagicMock(return_value=channel)
    bot.fetch_channel = AsyncMock(return_value=channel)
    return bot


class TestSplitMessage:
    def test_short_text_untouched(self):
        assert split_message("hello") == ["hello"]

    def test_empty_and_blank(self):
        assert split_message("") == []
        assert split_message(None) == []
        assert split_message("   \n  ") == []

    def test_splits_on_lines(self):
        text = "\n".join(["a" * 900, "b" * 900, "c" * 900])
        chunks = split_message(text, 2000)
        assert chunks == ["a" * 900 + "\n" + "b" * 900, "c" * 900]

    def test_hard_splits_long_lines(self):
        chunks = split_message("x" * 4500, 2000)
        assert [len(c) for c in chunks] == [2000, 2000, 500]
        assert "".join(chunks) == "x" * 4500

    def test_chunks_never_exceed_limit(self):
        text = "\n".join("line %d " % i + "y" * (i * 37 % 300) for i in range(200))
        assert all(0 < len(c) <= 2000 for c in split_message(text))


class TestCallbackSink:
    @pytest.mark.asyncio
    async def test_sends_every_chunk(self):
        reply = AsyncMock()
        sink = CallbackSink(reply)

        assert await sink.deliver("x" * 2500) is True
        assert reply.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_returns_false(self):
        reply = AsyncMock(side_effect=_http_error())
        assert await CallbackSink(reply).deliver("hi") is False

    @pytest.mark.asyncio
    async def test_files_ride_on_last_chunk(self):
        reply = AsyncMock()
        files = [MagicMock()]

        await CallbackSink(reply).deliver("a" * 2100, files=files)

        first, last = reply.await_args_list
        assert "files" not in first.kwargs
        assert last.kwargs["files"] is files


class TestChannelPostSink:
    @pytest.mark.asyncio
    async def test_posts_to_channel(self):
        channel = FakeChannel()
        sink = ChannelPostSink(_bot_with(channel), channel.id)

        assert await sink.deliver("digest") is True
        assert channel.sent[0][0] == "digest"

    @pytest.mark.asyncio
    async def test_missing_channel(self):
        bot = _bot_with(None)
        assert await ChannelPostSink(bot, 1).deliver("digest") is False

    @pytest.mark.asyncio
    async def test_send_error_returns_false(self):
        channel = FakeChannel()
        channel.send = AsyncMock(side_effect=_http_error(403))
        assert await ChannelPostSink(_bot_with(channel), channel.id).deliver("digest") is False


class TestWebhookSink:
    @pytest.mark.asyncio
    async def test_creates_managed_webhook_once(self):
        channel = FakeChannel()
        bot = _bot_with(channel)

        assert await WebhookSink(bot, channel.id, "Quantfase").deliver("one") is True
        assert await WebhookSink(bot, channel.id, "Quantfase").deliver("two") is True

        assert len(channel.created) == 1
        hook = channel.created[0]
        assert hook.name == MANAGED_WEBHOOK_NAME
        assert [c for c, _ in hook.sent] == ["one", "two"]
        assert hook.sent[0][1]["username"] == "Quantfase"
        assert hook.sent[0][1]["wait"] is True

    @pytest.mark.asyncio
    async def test_reuses_existing_webhook(self):
        existing = FakeWebhook(MANAGED_WEBHOOK_NAME, owner_id=999)
        channel = FakeChannel(webhooks=[FakeWebhook("someone else"), existing])

        assert await WebhookSink(_bot_with(channel), channel.id, "DisExplain").deliver("hi") is True
        assert channel.created == []
        assert existing.sent[0][0] == "hi"

    @pytest.mark.asyncio
    async def test_configured_url(self):
        hook = FakeWebhook("configured")
        bot = _bot_with(None)
        with patch.object(discord.Webhook, "from_url", return_value=hook) as from_url:
            sink = WebhookSink(bot, 0, "Telebug", webhook_url="https://discord.com/api/webhooks/1/abc")
            assert await sink.deliver("hello") is True
        from_url.assert_called_once()
        assert hook.sent[0][1]["username"] == "Telebug"

    @pytest.mark.asyncio
    async def test_channel_without_webhooks(self):
        assert await WebhookSink(_bot_with(None), 1, "x").deliver("hi") is False

    @pytest.mark.asyncio
    async def test_create_failure_returns_false(self):
        channel = FakeChannel()
        channel.create_webhook = AsyncMock(side_effect=_http_error(403))
        assert await WebhookSink(_bot_with(channel), channel.id, "x").deliver("hi") is False


class TestThreadReplySink:
    @pytest.mark.asyncio
    async def test_uses_existing_thread(self):
        thread = FakeChannel(channel_id=777)
        message = MagicMock()
        message.thread = thread
        message.create_thread = AsyncMock()
        channel = FakeChannel()
        channel.fetch_message = AsyncMock(return_value=message)

        sink = ThreadReplySink(_bot_with(channel), channel.id, 42)

        assert await sink.deliver("in thread") is True
        assert thread.sent[0][0] == "in thread"
        message.create_thread.assert_not_called()

    @pytest.mark.asyncio
    async def test_starts_thread_when_missing(self):
        thread = FakeChannel(channel_id=778)
        thread.name = "Dyno summary"
        message = MagicMock()
        message.thread = None
        message.create_thread = AsyncMock(return_value=thread)
        channel = FakeChannel()
        channel.fetch_message = AsyncMock(return_value=message)

        sink = ThreadReplySink(_bot_with(channel), channel.id, 42, thread_name="Dyno summary")

        assert await sink.deliver("hello") is True
        message.create_thread.assert_awaited_once_with(
            name="Dyno summary", auto_archive_duration=THREAD_AUTO_ARCHIVE_MINUTES
        )
        assert thread.sent[0][0] == "hello"

    @pytest.mark.asyncio
    async def test_no_thread_and_creation_disabled(self):
        message = MagicMock()
        message.thread = None
        channel = FakeChannel()
        channel.fetch_message = AsyncMock(return_value=message)

        sink = ThreadReplySink(_bot_with(channel), channel.id, 42, create_if_missing=False)

        assert await sink.deliver("hello") is False


class TestSelectSinks:
    def _config(self, **overrides):
        data = {
            "name": "Quantfase",
            "source_channel_ids": ["1"],
            "target_channel_id": "2",
            "delivery": ["reply", "channel", "webhook", "thread"],
        }
        data.update(overrides)
        return HistoryPluginConfig.from_dict(data)

    def test_all_modes(self):
        message = MagicMock()
        message.channel.id = 10
        message.id = 11
        sinks = select_sinks(self._config(), MagicMock(), reply=AsyncMock(), message=message)
        assert [type(s) for s in sinks] == [CallbackSink, ChannelPostSink, WebhookSink, ThreadReplySink]

    def test_modes_needing_a_message_are_dropped_without_one(self):
        sinks = select_sinks(self._config(), MagicMock())
        assert [type(s) for s in sinks] == [ChannelPostSink, WebhookSink]

    def test_channel_mode_needs_target(self):
        config = self._config(target_channel_id=None, delivery=["channel"])
        assert select_sinks(config, MagicMock()) == []
