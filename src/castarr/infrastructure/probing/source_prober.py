"""Source prober — latency (HEAD) and throughput (playlist download) checks.

Unavailability is data, never an exception: every measurement returns a
value and logs the failure reason at debug level.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar
from urllib.parse import urlparse

import httpx
import structlog

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.sources import (
    CandidateSource,
    ProbeErrorKind,
    ProbeResult,
)
from castarr.domain.exceptions import OperationCancelled
from castarr.domain.ports.clock import ClockPort
from castarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

T = TypeVar("T")

_NO_CACHE = {"Cache-Control": "no-cache"}


def is_playlist_url(url: str) -> bool:
    """True when the URL path names an HLS playlist (``*.m3u8``)."""
    return urlparse(url).path.lower().endswith(".m3u8")


async def _guarded(cancel: CancelToken | None, awaitable: Awaitable[T]) -> T:
    if cancel is None:
        return await awaitable
    return await cancel.guard(awaitable)


class SourceProber:
    """Measures candidate sources and caches the results.

    Strategy for latency:
    1. HEAD request to the probe URL.
    2. On 405/501 (method not allowed), fall back to GET with
       ``Range: bytes=0-0`` to minimise transfer.

    Throughput is only measured for playlist URLs: the body is downloaded
    and its size divided by the elapsed time.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        latency_timeout: float = 5.0,
        throughput_timeout: float = 8.0,
        cache_ttl_seconds: float = 600.0,
        clock: ClockPort | None = None,
        cache: TtlCache[ProbeResult] | None = None,
    ) -> None:
        self._http = http_client
        self._latency_timeout = latency_timeout
        self._throughput_timeout = throughput_timeout
        self.cache: TtlCache[ProbeResult] = cache or TtlCache(
            cache_ttl_seconds, clock=clock
        )

    async def measure_latency(
        self,
        url: str,
        cancel: CancelToken | None = None,
        *,
        timeout: float | None = None,
    ) -> float | None:
        """Round-trip time in milliseconds, or ``None`` when unavailable."""
        latency, _ = await self._latency(url, cancel, timeout)
        return latency

    async def _latency(
        self, url: str, cancel: CancelToken | None, timeout: float | None
    ) -> tuple[float | None, ProbeErrorKind | None]:
        timeout = timeout if timeout is not None else self._latency_timeout
        t0 = time.monotonic()
        try:
            resp = await _guarded(
                cancel,
                self._http.head(
                    url, timeout=timeout, follow_redirects=True, headers=_NO_CACHE
                ),
            )
            if resp.status_code in (405, 501):
                resp = await _guarded(
                    cancel,
                    self._http.get(
                        url,
                        timeout=timeout,
                        follow_redirects=True,
                        headers={**_NO_CACHE, "Range": "bytes=0-0"},
                    ),
                )
        except OperationCancelled:
            log.debug("latency_probe_cancelled", url=url)
            return None, "cancelled"
        except httpx.TimeoutException:
            log.debug("latency_probe_timeout", url=url, timeout=timeout)
            return None, "timeout"
        except httpx.HTTPError as exc:
            log.debug("latency_probe_error", url=url, error=str(exc))
            return None, "http_error"

        if not resp.is_success:
            log.debug("latency_probe_status", url=url, status=resp.status_code)
            return None, "http_status"
        return (time.monotonic() - t0) * 1000, None

    async def measure_throughput(
        self,
        url: str,
        cancel: CancelToken | None = None,
        *,
        timeout: float | None = None,
    ) -> float:
        """Download speed of the playlist body in KB/s; 0 on any failure."""
        if not is_playlist_url(url):
            return 0.0

        timeout = timeout if timeout is not None else self._throughput_timeout
        t0 = time.monotonic()
        try:
            resp = await _guarded(
                cancel,
                self._http.get(
                    url, timeout=timeout, follow_redirects=True, headers=_NO_CACHE
                ),
            )
        except OperationCancelled:
            log.debug("throughput_probe_cancelled", url=url)
            return 0.0
        except httpx.HTTPError as exc:
            log.debug("throughput_probe_error", url=url, error=str(exc))
            return 0.0

        if not resp.is_success:
            return 0.0

        elapsed = time.monotonic() - t0
        if elapsed <= 0:
            return 0.0
        return (len(resp.content) / 1024) / elapsed

    async def probe_url(
        self, url: str, cancel: CancelToken | None = None
    ) -> ProbeResult:
        """Probe one URL, serving a fresh cached result when present."""
        cached = self.cache.get(url)
        if cached is not None:
            log.debug("probe_cache_hit", url=url)
            return cached

        (latency, error), throughput = await asyncio.gather(
            self._latency(url, cancel, None),
            self.measure_throughput(url, cancel),
        )

        if cancel is not None and cancel.cancelled:
            # Never cache a measurement that was cut short.
            return ProbeResult.unavailable("cancelled")

        result = ProbeResult(
            latency_ms=latency,
            throughput_kbps=throughput,
            available=latency is not None,
            error=error,
        )
        self.cache.set(url, result)
        log.debug(
            "probe_done",
            url=url,
            available=result.available,
            latency_ms=None if latency is None else round(latency, 1),
            throughput_kbps=round(throughput, 1),
        )
        return result

    async def probe_source(
        self, source: CandidateSource, cancel: CancelToken | None = None
    ) -> ProbeResult:
        """Probe the first episode of *source*."""
        url = source.probe_url
        if url is None:
            return ProbeResult.unavailable("no_episodes")
        return await self.probe_url(url, cancel)

    def invalidate_cache(self) -> None:
        self.cache.clear()
        log.info("probe_cache_invalidated")
