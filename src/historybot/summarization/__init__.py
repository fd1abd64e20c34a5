"""Summarization system for conversation history."""

from .chunker import split_chunks
from .collector import HistoryCollector, HistoryMessage, MessageSource
from .date_range import DateRange, DateRangeResolver, ResolutionState, parse_relative_offset
from .pipeline import DigestResult, run_history_digest
from .request_guard import RequestGuard
from .summarizer import IncrementalSummarizer, LLMProtocol, compose_prompt
from .time_windows import LookbackWindow, TimePeriod, parse_time_command, time_to_hours
from .transcript import format_recent_messages, format_transcript

__all__ = [
    "split_chunks",
    "HistoryCollector",
    "HistoryMessage",
    "MessageSource",
    "DateRange",
    "DateRangeResolver",
    "ResolutionState",
    "parse_relative_offset",
    "DigestResult",
    "run_history_digest",
    "RequestGuard",
    "IncrementalSummarizer",
    "LLMProtocol",
    "compose_prompt",
    "LookbackWindow",
    "TimePeriod",
    "parse_time_command",
    "time_to_hours",
    "format_recent_messages",
    "format_transcript",
]
