"""Wall-clock implementation of :class:`ClockPort`."""

from __future__ import annotations

import time


class SystemClock:
    """Monotonic clock backed by :func:`time.monotonic`."""

    def monotonic(self) -> float:
        return time.monotonic()
