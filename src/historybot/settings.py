"""Centralized constant settings for history digests.

These are non-secret, stable values better tracked in source control than
environment variables; each one can still be overridden from the environment.
Secrets (API keys, tokens) must remain in .env.
"""

from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def parse_channel_ids(raw: str | None) -> list[int]:
    """Parse a comma separated list of channel ids, keeping order."""
    if not raw:
        return []
    ids: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if token.isdigit() and int(token) not in ids:
            ids.append(int(token))
    return ids


def project_root() -> Path:
    """Return the repository root path.

    settings.py lives at src/historybot/settings.py, so the root is two
    levels above the package directory.
    """
    return Path(__file__).resolve().parents[2]


# --------------------- Text generation ---------------------

SUMMARY_API: str = os.getenv("SUMMARY_API", "anthropic")
SUMMARY_MODEL_SMALL: str = os.getenv("SUMMARY_MODEL_SMALL", "claude-3-5-haiku-latest")
SUMMARY_MODEL_LARGE: str = os.getenv("SUMMARY_MODEL_LARGE", "claude-sonnet-4-5")
SUMMARY_MAX_TOKENS: int = _env_int("SUMMARY_MAX_TOKENS", 4096)
SUMMARY_USE_CELERY: bool = _env_flag("SUMMARY_USE_CELERY")
SUMMARY_TASK_TIMEOUT: int = _env_int("SUMMARY_TASK_TIMEOUT", 180)

# --------------------- History collection / summarization ---------------------

HISTORY_PAGE_SIZE: int = _env_int("HISTORY_PAGE_SIZE", 100)
HISTORY_MAX_MESSAGES: int = _env_int("HISTORY_MAX_MESSAGES", 10_000)
CLIENT_READY_TIMEOUT: float = _env_float("CLIENT_READY_TIMEOUT", 10.0)
SUMMARY_CHUNK_SIZE: int = _env_int("SUMMARY_CHUNK_SIZE", 3000)
SUMMARY_CHUNK_DELAY_SECONDS: float = _env_float("SUMMARY_CHUNK_DELAY_SECONDS", 5.0)

# Discord hard limit for a single message body.
MAX_MESSAGE_LENGTH = 2000

# --------------------- Force summarize ---------------------

FORCE_SUMMARIZE_SOURCE_CHANNELS: list[int] = parse_channel_ids(
    os.getenv("FORCE_SUMMARIZE_SOURCE_CHANNELS")
)
FORCE_SUMMARIZE_DEFAULT_HOURS: int = _env_int("FORCE_SUMMARIZE_DEFAULT_HOURS", 3)
FORCE_SUMMARIZE_MAX_HOURS: int = _env_int("FORCE_SUMMARIZE_MAX_HOURS", 24)
FORCE_SUMMARIZE_GUARD_SECONDS: float = _env_float("FORCE_SUMMARIZE_GUARD_SECONDS", 5.0)

# --------------------- Plugins / auto digest ---------------------

HISTORY_PLUGINS_FILE: str = os.getenv("HISTORY_PLUGINS_FILE", "config/history_plugins.json")
AUTO_DIGEST_PLUGIN: str = os.getenv("AUTO_DIGEST_PLUGIN", "").strip()
AUTO_DIGEST_INTERVAL_MINUTES: float = _env_float("AUTO_DIGEST_INTERVAL_MINUTES", 10.0)
AUTO_DIGEST_PERIOD: str = os.getenv("AUTO_DIGEST_PERIOD", "4h")


# --------------------- Prompt templates ---------------------
# Placeholders use {{name}} and are filled by summarization.compose_prompt.

DEFAULT_HISTORY_PROMPT: str = (
    "Analyze the Discord conversation and provide a summary of the conversation. "
    "Be sure to include all the details of the conversation, including the names "
    "of the people involved and the content of the messages."
)

DEFAULT_OBJECTIVE: str = (
    "a detailed summary of the conversation between all users with key points and conclusions"
)

SUMMARIZATION_TEMPLATE: str = """# Summarized so far (we are adding to this)
{{current_summary}}

# Current conversation chunk we are summarizing (includes attachments)
{{chunk}}

Summarization objective: {{objective}}

# Instructions: Summarize the conversation so far. Return the summary. Do not acknowledge this request, just summarize and continue the existing summary if there is one. Capture any important details to the objective. Only respond with the new summary text.
Your response should be detailed and include all relevant information in a clear, well-structured format with sections and bullet points where appropriate."""

MERGE_TEMPLATE: str = (
    "Please combine all these points under same titles. Remove duplicated points "
    "and keep every distinct detail.\n\n{{summaries}}"
)

DATE_RANGE_TEMPLATE: str = """# Messages we are summarizing (the conversation is continued after this)
{{recent_messages}}

# Instructions: {{sender_name}} is requesting a summary of the conversation. Your goal is to determine their objective, along with the range of dates that their request covers.
The "objective" is a detailed description of what the user wants to summarize based on the conversation. If they just ask for a general summary, you can set the objective to be "{{default_objective}}".

The "start" and "end" are the range of dates that the user wants to summarize, relative to the current time. The format is "2 days ago" or "3 hours ago" or "4 minutes ago" or "5 seconds ago", i.e. "<integer> <unit> ago".

If the user specifies a time range like "past 2 hours" or "last 3 days", use that.
If the user doesn't specify a time range, use a default range of "0 minutes ago" to "{{default_lookback_hours}} hours ago".
Maximum lookback period is {{max_lookback_hours}} hours.

Your response must be formatted as a JSON block with this structure:
```json
{
  "objective": "<What the user wants to summarize>",
  "start": "0 minutes ago",
  "end": "{{default_lookback_hours}} hours ago",
  "channels": []
}
```

If the user specifies specific channels to summarize, include those channel IDs in the "channels" array. Otherwise, leave it as an empty array to use the default channels.
"""

# --------------------- User-facing fallback texts ---------------------

NO_MESSAGES_TEXT: str = "There were no messages in the specified time range to summarize."
SUMMARY_FAILED_TEXT: str = "I'm sorry, I wasn't able to generate a summary."
SUMMARY_ERROR_TEXT: str = (
    "I encountered an error while trying to summarize the conversation. Please try again later."
)
