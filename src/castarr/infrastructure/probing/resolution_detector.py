"""Resolution detection from HLS master playlists."""

from __future__ import annotations

import re

import httpx
import structlog

from castarr.domain.cancellation import CancelToken
from castarr.domain.exceptions import OperationCancelled

log = structlog.get_logger(__name__)

_RESOLUTION_RE = re.compile(r"RESOLUTION=(\d+)x(\d+)", re.IGNORECASE)


def max_declared_height(content: str) -> int | None:
    """Largest ``RESOLUTION=WxH`` height on ``#EXT-X-STREAM-INF`` lines."""
    best: int | None = None
    for line in content.splitlines():
        if not line.startswith("#EXT-X-STREAM-INF"):
            continue
        match = _RESOLUTION_RE.search(line)
        if match is None:
            continue
        height = int(match.group(2))
        if best is None or height > best:
            best = height
    return best


class M3u8ResolutionDetector:
    """Reads the variant list of a playlist and reports its best height.

    Returns labels such as ``"1080p"``.  Any failure (network, status,
    cancellation, media playlist without variants) yields ``None``.
    """

    def __init__(self, http_client: httpx.AsyncClient, *, timeout: float = 5.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def detect(self, url: str, cancel: CancelToken | None = None) -> str | None:
        request = self._http.get(url, timeout=self._timeout, follow_redirects=True)
        try:
            if cancel is not None:
                resp = await cancel.guard(request)
            else:
                resp = await request
        except OperationCancelled:
            return None
        except httpx.HTTPError as exc:
            log.debug("resolution_detect_error", url=url, error=str(exc))
            return None

        if not resp.is_success:
            log.debug("resolution_detect_status", url=url, status=resp.status_code)
            return None

        height = max_declared_height(resp.text)
        if height is None:
            return None
        return f"{height}p"
