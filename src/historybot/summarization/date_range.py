"""Infer the requested time range and objective of a summary request."""

from __future__ import annotations

import enum
import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from historybot.settings import DATE_RANGE_TEMPLATE, DEFAULT_OBJECTIVE

from .summarizer import LLMProtocol, compose_prompt
from .time_windows import LookbackWindow, utcnow

_LOG = logging.getLogger(__name__)

_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}
_OFFSET_UNIT_RE = re.compile(r"\b(second|minute|hour|day)s?\b", re.IGNORECASE)
_OFFSET_AMOUNT_RE = re.compile(r"\d+")
_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_BARE_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


class ResolutionState(enum.Enum):
    INFERRING = "inferring"
    VALIDATED = "validated"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class DateRange:
    objective: str
    start: datetime
    end: datetime
    channels: list[int] = field(default_factory=list)
    state: ResolutionState = ResolutionState.VALIDATED

    @property
    def window(self) -> LookbackWindow:
        return LookbackWindow(start=self.start, end=self.end)


def parse_relative_offset(text: Any) -> timedelta | None:
    """
    Parse "<integer> <unit> ago" into a timedelta.

    The first integer in the text is the amount, so "1.5 hours" counts as one
    hour. A missing integer counts as zero; a missing unit makes the value
    invalid.
    """
    if not isinstance(text, str):
        return None
    unit = _OFFSET_UNIT_RE.search(text)
    if not unit:
        return None
    amount = _OFFSET_AMOUNT_RE.search(text)
    count = int(amount.group()) if amount else 0
    return timedelta(seconds=count * _UNIT_SECONDS[unit.group(1).lower()])


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Extract the first JSON object from a model reply, fenced or bare."""
    if not text:
        return None
    for pattern in (_FENCED_JSON_RE, _BARE_JSON_RE):
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1) if match.groups() else match.group(0)
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _parse_channels(raw: Any) -> list[int]:
    if not isinstance(raw, list):
        return []
    channels: list[int] = []
    for item in raw:
        token = str(item).strip().strip("<#>")
        if token.isdigit():
            channels.append(int(token))
    return channels


class DateRangeResolver:
    """Asks the text generator for a date range, retrying a bounded number of times."""

    def __init__(
        self,
        llm: LLMProtocol,
        default_lookback_hours: int = 3,
        max_lookback_hours: int = 24,
        attempts: int = 3,
        fallback_days: int = 30,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.llm = llm
        self.default_lookback_hours = default_lookback_hours
        self.max_lookback_hours = max_lookback_hours
        self.attempts = attempts
        self.fallback_days = fallback_days
        self._clock = clock

    def build_prompt(self, recent_messages: str, sender_name: str) -> str:
        return compose_prompt(
            DATE_RANGE_TEMPLATE,
            recent_messages=recent_messages,
            sender_name=sender_name,
            default_objective=DEFAULT_OBJECTIVE,
            default_lookback_hours=self.default_lookback_hours,
            max_lookback_hours=self.max_lookback_hours,
        )

    def validate(self, parsed: dict[str, Any] | None) -> DateRange | None:
        """Turn a parsed reply into a clamped, chronologically ordered range."""
        if not parsed:
            return None
        objective = parsed.get("objective")
        if not objective or not isinstance(objective, str):
            return None
        start_offset = parse_relative_offset(parsed.get("start"))
        end_offset = parse_relative_offset(parsed.get("end"))
        if start_offset is None or end_offset is None:
            return None

        max_offset = timedelta(hours=self.max_lookback_hours)
        start_offset = min(start_offset, max_offset)
        end_offset = min(end_offset, max_offset)

        now = self._clock()
        first, second = now - start_offset, now - end_offset
        if first > second:
            _LOG.info("Inferred date range is reversed; swapping start and end")
            first, second = second, first

        return DateRange(
            objective=objective.strip(),
            start=first,
            end=second,
            channels=_parse_channels(parsed.get("channels")),
            state=ResolutionState.VALIDATED,
        )

    def fallback(self) -> DateRange:
        now = self._clock()
        return DateRange(
            objective=DEFAULT_OBJECTIVE,
            start=now - timedelta(days=self.fallback_days),
            end=now,
            state=ResolutionState.FALLBACK,
        )

    async def resolve(self, recent_messages: str, sender_name: str) -> DateRange:
        """
        Infer objective and date range from the request context.

        Returns:
            A validated range, or the fixed fallback window after the last
            failed attempt
        """
        prompt = self.build_prompt(recent_messages, sender_name)
        for attempt in range(1, self.attempts + 1):
            try:
                reply = await self.llm.generate(prompt)
            except Exception:  # noqa: BLE001
                _LOG.exception("Date range inference attempt %d/%d failed", attempt, self.attempts)
                continue
            date_range = self.validate(parse_json_object(reply))
            if date_range is not None:
                _LOG.info(
                    "Date range resolved on attempt %d: %s -> %s",
                    attempt,
                    date_range.start.isoformat(),
                    date_range.end.isoformat(),
                )
                return date_range
            _LOG.warning("Unusable date range reply on attempt %d/%d: %.200s", attempt, self.attempts, reply)

        _LOG.warning(
            "Date range inference gave up after %d attempts; using last %d days",
            self.attempts,
            self.fallback_days,
        )
        return self.fallback()
