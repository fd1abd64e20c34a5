"""Lookback windows and time-period parsing for history commands."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

DEFAULT_PERIOD_HOURS = 24
DEFAULT_PERIOD_DISPLAY = "1d"

# Fixed-format shortcuts accepted anywhere in a command.
STANDARD_PERIODS: dict[str, int] = {
    "1h": 1,
    "2h": 2,
    "3h": 3,
    "4h": 4,
    "6h": 6,
    "8h": 8,
    "12h": 12,
    "1d": 24,
    "2d": 48,
    "3d": 72,
    "1w": 168,
    "2w": 336,
    "1month": 720,
}

# Regex fragment matching one period token such as "4h", "2 days" or "1month".
PERIOD_PATTERN = r"\d+\s*(?:months?|weeks?|days?|hours?|[hdwm])"

_UNIT_HOURS = {"h": 1, "d": 24, "w": 24 * 7, "m": 24 * 30}
_WORD_HOURS = (("hour", 1), ("day", 24), ("week", 24 * 7), ("month", 24 * 30))


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class LookbackWindow:
    """Closed interval ``[start, end]`` of message creation times."""

    start: datetime
    end: datetime

    @classmethod
    def last(cls, hours: float, now: datetime | None = None) -> "LookbackWindow":
        """Window covering the *hours* before *now*."""
        end = now or utcnow()
        return cls(start=end - timedelta(hours=hours), end=end)

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp <= self.end

    def is_before(self, timestamp: datetime) -> bool:
        """True when *timestamp* is older than the window start."""
        return timestamp < self.start

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


@dataclass(frozen=True)
class TimePeriod:
    hours: int
    display: str


def _leading_int(text: str) -> int:
    match = re.match(r"\d+", text)
    return int(match.group(0)) if match else 1


def time_to_hours(time_period: str | None) -> int:
    """
    Convert a period token to hours.

    Accepts "4h", "2d", "1w", "1month", "3m" (months) and word forms such
    as "2 days" or "3 hours". Anything else falls back to 24 hours.
    """
    if not time_period:
        return DEFAULT_PERIOD_HOURS

    token = re.sub(r"\s+", "", str(time_period).lower())

    if token in STANDARD_PERIODS:
        return STANDARD_PERIODS[token]

    match = re.fullmatch(r"(\d+)([hdwm])", token)
    if match:
        return int(match.group(1)) * _UNIT_HOURS[match.group(2)]

    for word, hours in _WORD_HOURS:
        if word in token:
            return _leading_int(token) * hours

    return DEFAULT_PERIOD_HOURS


def format_time_period(time_period: str | None) -> str:
    """Return the short display form ("4h", "2d", "1month") of a period token."""
    if not time_period:
        return DEFAULT_PERIOD_DISPLAY

    token = re.sub(r"\s+", "", str(time_period).lower())

    if re.fullmatch(r"\d+[hdwm]", token) or token in STANDARD_PERIODS:
        return token

    for word, suffix in (("hour", "h"), ("day", "d"), ("week", "w"), ("month", "month")):
        if word in token:
            return f"{_leading_int(token)}{suffix}"

    return DEFAULT_PERIOD_DISPLAY


def parse_time_command(text: str, pattern: re.Pattern[str] | str | None = None) -> TimePeriod:
    """
    Extract the lookback period from a command message.

    The first capture group of *pattern* is treated as the period token.
    Without a match, the text is scanned for a standard token ("4h", "1w").
    When nothing is found the period defaults to 24 hours.
    """
    lowered = (text or "").lower().strip()

    if pattern is not None:
        match = re.search(pattern, lowered)
        if match and match.groups() and match.group(1):
            token = re.sub(r"\s+", "", match.group(1).lower())
            return TimePeriod(hours=time_to_hours(token), display=format_time_period(token))

    for token in STANDARD_PERIODS:
        if re.search(rf"(?<![\w]){re.escape(token)}(?![\w])", lowered):
            return TimePeriod(hours=STANDARD_PERIODS[token], display=token)

    return TimePeriod(hours=DEFAULT_PERIOD_HOURS, display=DEFAULT_PERIOD_DISPLAY)
