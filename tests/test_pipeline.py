"""Tests for transcript formatting and the shared digest pipeline."""

import pytest

from historybot.settings import NO_MESSAGES_TEXT
from historybot.summarization import (
    HistoryCollector,
    IncrementalSummarizer,
    LookbackWindow,
    format_recent_messages,
    format_transcript,
    run_history_digest,
)

from conftest import NOW, FakeThread, ScriptedLLM, make_message, no_sleep


class TestFormatTranscript:
    def test_lines_sorted_oldest_first(self):
        messages = [make_message(2, 5, "later"), make_message(1, 65, "earlier", author="bob")]

        transcript = format_transcript(messages)

        assert transcript.splitlines() == [
            "[2025-03-14 10:55 UTC] bob: earlier",
            "[2025-03-14 11:55 UTC] alice: later",
        ]

    def test_thread_channel_embeds_and_attachments(self):
        msg = make_message(
            1,
            0,
            "see this",
            thread_name="design",
            channel_id=42,
            embeds=("Release notes v2",),
            attachments=("diagram.png",),
        )

        lines = format_transcript([msg], include_channel=True).splitlines()

        assert lines == [
            "[2025-03-14 12:00 UTC] [#design] [channel:42] alice: see this",
            "embeds: Release notes v2",
            "attachments: diagram.png",
        ]

    def test_channel_label_only_on_request(self):
        msg = make_message(1, 0, "hi", channel_id=42)
        assert "[channel:42]" not in format_transcript([msg])

    def test_recent_messages(self):
        messages = [make_message(2, 1, "tldr?"), make_message(1, 2, "hello", author="bob")]
        assert format_recent_messages(messages) == "bob: hello\nalice: tldr?"


class TestRunHistoryDigest:
    @pytest.mark.asyncio
    async def test_no_messages(self, source):
        source.add_channel(1, [make_message(1, 600)])
        llm = ScriptedLLM("unused")
        collector = HistoryCollector(source)
        summarizer = IncrementalSummarizer(llm, sleep=no_sleep)

        result = await run_history_digest(
            collector, summarizer, [1], LookbackWindow.last(4, now=NOW), "recap"
        )

        assert result.text == NO_MESSAGES_TEXT
        assert result.empty
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_summarizes_all_channels_and_threads(self, source):
        source.add_channel(1, [make_message(1, 30, "from one", channel_id=1)])
        source.add_channel(2, [make_message(2, 20, "from two", channel_id=2)])
        source.add_thread(2, FakeThread(50, "side"), [make_message(3, 10, "in thread", channel_id=2)])
        llm = ScriptedLLM("the digest")
        collector = HistoryCollector(source)
        summarizer = IncrementalSummarizer(llm, sleep=no_sleep)

        result = await run_history_digest(
            collector, summarizer, [1, 2], LookbackWindow.last(4, now=NOW), "what happened"
        )

        assert result.text == "the digest"
        assert result.message_count == 3
        assert result.channel_ids == (1, 2)
        prompt = llm.prompts[0]
        assert "[channel:1] alice: from one" in prompt
        assert "[#side] [channel:2] alice: in thread" in prompt
        assert prompt.index("from one") < prompt.index("from two") < prompt.index("in thread")

    @pytest.mark.asyncio
    async def test_single_channel_has_no_channel_labels(self, source):
        source.add_channel(1, [make_message(1, 30, "solo")])
        llm = ScriptedLLM("ok")

        await run_history_digest(
            HistoryCollector(source),
            IncrementalSummarizer(llm, sleep=no_sleep),
            [1],
            LookbackWindow.last(4, now=NOW),
            "recap",
        )

        assert "[channel:" not in llm.prompts[0]
