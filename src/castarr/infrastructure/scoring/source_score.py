"""Composite source scoring.

All functions are pure (no I/O, no state).  The score is a step function
of four bands and lies in ``[0, 100]``:

====================  ======
band                  max
====================  ======
resolution            40
episode count         20
throughput (KB/s)     25
latency (ms)          15
====================  ======
"""

from __future__ import annotations

import re

from castarr.domain.entities.sources import ProbeResult

# (minimum height, points); first match wins.
_RESOLUTION_BANDS: tuple[tuple[int, float], ...] = (
    (2160, 40.0),
    (1440, 35.0),
    (1080, 30.0),
    (720, 25.0),
    (480, 15.0),
)
_UNKNOWN_RESOLUTION_POINTS: float = 10.0

# (minimum KB/s, points)
_THROUGHPUT_BANDS: tuple[tuple[float, float], ...] = (
    (1000.0, 25.0),
    (500.0, 20.0),
    (200.0, 15.0),
    (100.0, 10.0),
    (50.0, 5.0),
)

# (maximum ms, points)
_LATENCY_BANDS: tuple[tuple[float, float], ...] = (
    (100.0, 15.0),
    (300.0, 12.0),
    (500.0, 8.0),
    (1000.0, 5.0),
    (2000.0, 2.0),
)

_EPISODE_POINTS_EACH: float = 0.5
_EPISODE_POINTS_MAX: float = 20.0

_HEIGHT_RE = re.compile(r"^\s*(?:(\d+)\s*[xX×]\s*)?(\d+)\s*[pP]?\s*$")


def parse_resolution_height(label: str | None) -> int | None:
    """Extract the vertical resolution from a label.

    Accepts ``"1080p"``, ``"1080"`` and ``"1920x1080"``.  Anything else
    (including ``None`` and ``"4K"``) returns ``None``.
    """
    if not label:
        return None
    match = _HEIGHT_RE.match(label)
    if match is None:
        return None
    return int(match.group(2))


def resolution_points(label: str | None) -> float:
    height = parse_resolution_height(label)
    if height is None:
        return _UNKNOWN_RESOLUTION_POINTS
    for min_height, points in _RESOLUTION_BANDS:
        if height >= min_height:
            return points
    return _UNKNOWN_RESOLUTION_POINTS


def episode_points(episode_count: int) -> float:
    return min(max(episode_count, 0) * _EPISODE_POINTS_EACH, _EPISODE_POINTS_MAX)


def throughput_points(throughput_kbps: float) -> float:
    for min_kbps, points in _THROUGHPUT_BANDS:
        if throughput_kbps >= min_kbps:
            return points
    return 0.0


def latency_points(latency_ms: float) -> float:
    for max_ms, points in _LATENCY_BANDS:
        if latency_ms <= max_ms:
            return points
    return 0.0


def score_source(
    probe: ProbeResult,
    resolution: str | None,
    episode_count: int,
) -> float:
    """Combine a probe result with source metadata into a 0-100 score.

    Unavailable sources always score ``0``.  The result is rounded to two
    decimals so equal inputs produce equal scores.

    Example:
        120 ms, 520 KB/s, ``"1080p"``, 24 episodes -> 30 + 12 + 20 + 12 = 74.0
    """
    if not probe.available or probe.latency_ms is None:
        return 0.0
    total = (
        resolution_points(resolution)
        + episode_points(episode_count)
        + throughput_points(probe.throughput_kbps)
        + latency_points(probe.latency_ms)
    )
    return round(min(total, 100.0), 2)
