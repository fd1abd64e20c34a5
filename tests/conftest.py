"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from historybot import digest_db
from historybot.summarization import HistoryMessage

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


def make_message(
    msg_id: int,
    minutes_ago: float,
    content: str = "",
    author: str = "alice",
    now: datetime = NOW,
    **extra,
) -> HistoryMessage:
    """Build a HistoryMessage created ``minutes_ago`` before *now*."""
    return HistoryMessage(
        id=msg_id,
        author_name=author,
        content=content or f"message {msg_id}",
        created_at=now - timedelta(minutes=minutes_ago),
        **extra,
    )


class FakeThread:
    def __init__(self, thread_id: int, name: str):
        self.id = thread_id
        self.name = name


class FakeSourceChannel:
    def __init__(self, channel_id: int):
        self.id = channel_id


class FakeMessageSource:
    """In-memory MessageSource serving pages newest first, like Discord does."""

    def __init__(self, is_ready: bool = True):
        self.is_ready = is_ready
        self.messages: dict[int, list[HistoryMessage]] = {}
        self.active: dict[int, list[FakeThread]] = {}
        self.archived: dict[int, list[FakeThread]] = {}
        self.failing_ids: set[int] = set()
        self.failing_channels: set[int] = set()
        self.page_calls: list[tuple[int, int | None, int]] = []

    def add_channel(self, channel_id: int, messages: list[HistoryMessage]) -> None:
        self.messages[channel_id] = list(messages)

    def add_thread(self, channel_id: int, thread: FakeThread, messages: list[HistoryMessage], archived=False):
        target = self.archived if archived else self.active
        target.setdefault(channel_id, []).append(thread)
        self.messages[thread.id] = list(messages)

    async def ready(self) -> bool:
        return self.is_ready

    async def fetch_channel(self, channel_id: int):
        if channel_id in self.failing_channels:
            raise RuntimeError(f"cannot fetch {channel_id}")
        if channel_id not in self.messages:
            return None
        return FakeSourceChannel(channel_id)

    async def fetch_page(self, channel, *, before, limit):
        self.page_calls.append((channel.id, before, limit))
        if channel.id in self.failing_ids:
            raise RuntimeError(f"history unavailable for {channel.id}")
        ordered = sorted(self.messages.get(channel.id, []), key=lambda m: m.id, reverse=True)
        if before is not None:
            ordered = [m for m in ordered if m.id < before]
        return ordered[:limit]

    async def active_threads(self, channel):
        return list(self.active.get(channel.id, []))

    async def archived_threads(self, channel):
        return list(self.archived.get(channel.id, []))

    def thread_name(self, thread) -> str:
        return thread.name


class ScriptedLLM:
    """Returns scripted replies in order; Exception instances are raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FailingLLM:
    def __init__(self):
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        raise RuntimeError("generator unavailable")


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture(autouse=True)
def isolated_digest_db(tmp_path, monkeypatch):
    """Point the digest database at a per-test file."""
    db_file = tmp_path / "digests.db"
    monkeypatch.setattr(digest_db, "DB_PATH", db_file)
    return db_file


@pytest.fixture
def source():
    return FakeMessageSource()


@pytest.fixture
def mock_discord_channel():
    """Create a mock Discord channel."""
    channel = MagicMock()
    channel.id = 123456789
    channel.name = "test-channel"
    channel.send = AsyncMock()
    return channel


@pytest.fixture
def mock_discord_message(mock_discord_channel):
    """Create a mock Discord message."""
    message = MagicMock()
    message.id = 987654321
    message.content = "Test message content"
    message.author = MagicMock()
    message.author.id = 111222333
    message.author.bot = False
    message.author.nick = None
    message.author.global_name = "Test User"
    message.author.name = "TestUser"
    message.channel = mock_discord_channel
    message.mentions = []
    message.reply = AsyncMock()
    return message


@pytest.fixture
def mock_bot():
    """Create a mock Discord bot."""
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.id = 999888777
    bot.user.name = "TestBot"
    bot.get_channel = MagicMock(return_value=None)
    bot.fetch_channel = AsyncMock(return_value=None)
    return bot
