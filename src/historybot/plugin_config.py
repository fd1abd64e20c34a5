"""History plugin configuration records.

Each plugin is plain data: a trigger built from its command prefix, the
channels it reads, where the digest goes and the instructions for the model.
Records are loaded from a JSON file (``HISTORY_PLUGINS_FILE``)::

    [
      {
        "name": "Quantfase",
        "command_prefix": "quantfase run on",
        "source_channel_ids": ["1349022831312371752"],
        "target_channel_id": "1349108063650451487",
        "delivery": ["reply", "channel"]
      }
    ]
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from historybot.settings import DEFAULT_HISTORY_PROMPT, HISTORY_MAX_MESSAGES, project_root
from historybot.summarization.time_windows import PERIOD_PATTERN
from historybot.text_generators import ModelClass

_LOG = logging.getLogger(__name__)

DELIVERY_MODES = ("reply", "channel", "webhook", "thread")


def build_trigger(command_prefix: str) -> re.Pattern[str]:
    """Compile ``<prefix> <period>`` into a pattern capturing the period."""
    words = [re.escape(w) for w in command_prefix.lower().split()]
    if not words:
        raise ValueError("command_prefix must not be empty")
    return re.compile(
        r"(?<!\w)" + r"\s+".join(words) + rf"(?:\s+({PERIOD_PATTERN}))?(?!\w)", re.IGNORECASE
    )


def _channel_id(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    token = str(raw).strip()
    if not token.isdigit():
        raise ValueError(f"invalid channel id: {raw!r}")
    return int(token)


@dataclass(frozen=True)
class HistoryPluginConfig:
    name: str
    command_prefix: str
    trigger: re.Pattern[str]
    source_channel_ids: tuple[int, ...]
    target_channel_id: int | None = None
    prompt: str = DEFAULT_HISTORY_PROMPT
    max_messages: int = HISTORY_MAX_MESSAGES
    delivery: tuple[str, ...] = ("reply",)
    webhook_url: str | None = None
    description: str = ""
    model_class: ModelClass = ModelClass.SMALL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryPluginConfig":
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("plugin needs a name")
        prefix = str(data.get("command_prefix") or f"{name.lower()} run on").strip()

        sources = tuple(
            cid for cid in (_channel_id(raw) for raw in data.get("source_channel_ids") or []) if cid
        )
        if not sources:
            raise ValueError(f"plugin {name} has no source channels")

        delivery = tuple(data.get("delivery") or ("reply",))
        unknown = [mode for mode in delivery if mode not in DELIVERY_MODES]
        if unknown:
            raise ValueError(f"plugin {name} has unknown delivery modes: {unknown}")

        return cls(
            name=name,
            command_prefix=prefix,
            trigger=build_trigger(prefix),
            source_channel_ids=sources,
            target_channel_id=_channel_id(data.get("target_channel_id")),
            prompt=str(data.get("prompt") or DEFAULT_HISTORY_PROMPT),
            max_messages=int(data.get("max_messages") or HISTORY_MAX_MESSAGES),
            delivery=delivery,
            webhook_url=data.get("webhook_url") or None,
            model_class=ModelClass(str(data.get("model_class") or "small").lower()),
            description=str(
                data.get("description") or f"Fetches Discord message history with '{prefix} [time period]'"
            ),
        )

    def matches(self, text: str) -> bool:
        return bool(text) and self.trigger.search(text) is not None


def _resolve_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute() and not p.exists():
        p = project_root() / p
    return p


def load_plugin_configs(path: str | Path) -> list[HistoryPluginConfig]:
    """Load plugin records; invalid entries are logged and skipped."""
    file_path = _resolve_path(path)
    if not file_path.is_file():
        _LOG.warning("History plugin file %s not found; no history plugins loaded", file_path)
        return []
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        _LOG.exception("Failed to read history plugin file %s", file_path)
        return []
    if not isinstance(raw, list):
        _LOG.error("History plugin file %s must contain a JSON list", file_path)
        return []

    configs: list[HistoryPluginConfig] = []
    for entry in raw:
        try:
            configs.append(HistoryPluginConfig.from_dict(entry))
        except (TypeError, ValueError, AttributeError) as exc:
            _LOG.error("Skipping history plugin entry %r: %s", entry, exc)
    _LOG.info("Loaded %d history plugin(s): %s", len(configs), ", ".join(c.name for c in configs))
    return configs
