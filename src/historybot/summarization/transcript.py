"""Serialize collected messages into compact transcripts for the LLM."""

from __future__ import annotations

from collections.abc import Iterable

from .collector import HistoryMessage


def sort_messages(messages: Iterable[HistoryMessage]) -> list[HistoryMessage]:
    """Return messages oldest first."""
    return sorted(messages, key=lambda m: m.created_at)


def format_message_line(msg: HistoryMessage, include_channel: bool = False) -> str:
    stamp = msg.created_at.strftime("%Y-%m-%d %H:%M UTC")
    prefix = f"[{stamp}] "
    if msg.thread_name:
        prefix += f"[#{msg.thread_name}] "
    if include_channel and msg.channel_id is not None:
        prefix += f"[channel:{msg.channel_id}] "

    lines = [f"{prefix}{msg.author_name}: {msg.content}"]
    if msg.embeds:
        lines.append("embeds: " + ". ".join(msg.embeds))
    if msg.attachments:
        lines.append("attachments: " + ", ".join(msg.attachments))
    return "\n".join(lines)


def format_transcript(messages: Iterable[HistoryMessage], include_channel: bool = False) -> str:
    """
    Build the transcript fed to the summarizer.

    Args:
        messages: Collected messages in any order
        include_channel: Label each line with its source channel id

    Returns:
        One entry per message, oldest first; empty string for no messages
    """
    return "\n".join(format_message_line(m, include_channel) for m in sort_messages(messages))


def format_recent_messages(messages: Iterable[HistoryMessage]) -> str:
    """Plain ``Name: content`` lines used as context for date-range inference."""
    return "\n".join(f"{m.author_name}: {m.content}" for m in sort_messages(messages))
