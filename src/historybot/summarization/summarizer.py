"""Incremental chunked summary generation."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Protocol

from historybot.settings import (
    MERGE_TEMPLATE,
    NO_MESSAGES_TEXT,
    SUMMARIZATION_TEMPLATE,
    SUMMARY_FAILED_TEXT,
)

from .chunker import split_chunks

_LOG = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class LLMProtocol(Protocol):
    """Protocol for LLM interface."""

    async def generate(self, prompt: str) -> str:
        """Generate text from a prompt."""
        ...


def compose_prompt(template: str, **values: object) -> str:
    """
    Fill ``{{name}}`` placeholders in *template*.

    Placeholders without a value are replaced by an empty string.
    """
    return _PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), "")), template)


def build_chunk_prompt(current_summary: str, chunk: str, objective: str) -> str:
    return compose_prompt(
        SUMMARIZATION_TEMPLATE,
        current_summary=current_summary,
        chunk=chunk,
        objective=objective,
    )


def build_merge_prompt(partials: list[str]) -> str:
    return compose_prompt(MERGE_TEMPLATE, summaries="\n\n".join(partials))


class IncrementalSummarizer:
    """Summarizes transcripts larger than the model context, chunk by chunk."""

    def __init__(
        self,
        llm: LLMProtocol,
        chunk_size: int = 3000,
        chunk_overlap: int = 0,
        delay_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        """
        Initialize summarizer.

        Args:
            llm: LLM instance that implements generate() method
            chunk_size: Maximum transcript characters per generator call
            chunk_overlap: Characters shared between consecutive chunks
            delay_seconds: Pause between successive generator calls
            sleep: Awaitable sleep, replaceable in tests
        """
        self.llm = llm
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def _pace(self, calls_made: int) -> None:
        if calls_made and self.delay_seconds > 0:
            await self._sleep(self.delay_seconds)

    async def summarize(self, transcript: str, objective: str) -> str:
        """
        Produce one summary for the whole transcript.

        Each chunk prompt carries the full running summary so far. When more
        than one partial summary was produced, a final merge call folds them
        together and its output is returned.

        Returns:
            Summary text, or a user-safe fallback string; never raises
        """
        if not transcript or not transcript.strip():
            return NO_MESSAGES_TEXT

        chunks = split_chunks(transcript, self.chunk_size, self.chunk_overlap)
        _LOG.info("Summarizing transcript of %d chars in %d chunk(s)", len(transcript), len(chunks))

        running_summary = ""
        partials: list[str] = []
        calls = 0
        for index, chunk in enumerate(chunks, start=1):
            await self._pace(calls)
            calls += 1
            prompt = build_chunk_prompt(running_summary, chunk, objective)
            try:
                partial = (await self.llm.generate(prompt)).strip()
            except Exception:  # noqa: BLE001
                _LOG.exception("Summary generation failed for chunk %d/%d", index, len(chunks))
                continue
            running_summary = running_summary + "\n" + partial
            partials.append(partial)

        if not partials:
            _LOG.error("No chunk produced a summary; returning fallback text")
            return SUMMARY_FAILED_TEXT

        if len(partials) == 1:
            return partials[0]

        await self._pace(calls)
        try:
            merged = (await self.llm.generate(build_merge_prompt(partials))).strip()
        except Exception:  # noqa: BLE001
            _LOG.exception("Merge of %d partial summaries failed; returning them unmerged", len(partials))
            return running_summary.strip()
        return merged or running_summary.strip()
