"""Time-boxed advisory lock against duplicate concurrent summarizations."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

_LOG = logging.getLogger(__name__)


class RequestGuard:
    """
    Advisory "a summary is already running" flag with a start time.

    A held guard stops being honoured once ``timeout_seconds`` have passed,
    so a later trigger may run while an earlier one is still finishing.
    """

    def __init__(self, timeout_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self.in_flight = False
        self.started_at: float | None = None

    def is_active(self) -> bool:
        if not self.in_flight or self.started_at is None:
            return False
        if self._clock() - self.started_at > self.timeout_seconds:
            _LOG.info("Request guard expired after %.1fs; treating as free", self.timeout_seconds)
            self.in_flight = False
            self.started_at = None
            return False
        return True

    def try_acquire(self) -> bool:
        """Claim the guard; False when another request holds it."""
        if self.is_active():
            return False
        self.in_flight = True
        self.started_at = self._clock()
        return True

    def release(self) -> None:
        self.in_flight = False
        self.started_at = None
