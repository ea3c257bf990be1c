"""Port for turning an episode URL into the URL the player should open."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.manifest import FilteredManifest, FilterOptions


@runtime_checkable
class ManifestFilterPort(Protocol):
    async def resolve_playable_url(
        self,
        url: str,
        options: FilterOptions | None = None,
        cancel: CancelToken | None = None,
    ) -> FilteredManifest: ...
