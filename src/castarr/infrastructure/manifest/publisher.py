"""In-memory playlist publisher served by the manifests router."""

from __future__ import annotations

import secrets

import structlog

from castarr.domain.ports.clock import ClockPort
from castarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

MANIFEST_ROUTE = "/api/v1/manifests"


class InMemoryManifestPublisher:
    """Stores filtered playlists under random tokens for ``ttl_seconds``.

    ``publish()`` returns ``{public_base_url}/api/v1/manifests/{token}.m3u8``;
    the API serves the text back through :meth:`get`.
    """

    def __init__(
        self,
        public_base_url: str,
        *,
        ttl_seconds: float = 600.0,
        clock: ClockPort | None = None,
    ) -> None:
        self._base = public_base_url.rstrip("/")
        self._store: TtlCache[str] = TtlCache(ttl_seconds, clock=clock)

    def publish(self, content: str) -> str | None:
        token = secrets.token_urlsafe(16)
        self._store.set(token, content)
        log.debug("manifest_published", token=token, size=len(content))
        return f"{self._base}{MANIFEST_ROUTE}/{token}.m3u8"

    def get(self, token: str) -> str | None:
        return self._store.get(token)

    def clear(self) -> None:
        self._store.clear()
