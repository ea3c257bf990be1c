"""Clock port — injectable time source for TTLs, throttles and timers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    """Monotonic time source in seconds."""

    def monotonic(self) -> float: ...
