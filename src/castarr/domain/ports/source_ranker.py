"""Port for ranking candidate sources."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.sources import CandidateSource, RankingReport


@runtime_checkable
class SourceRankerPort(Protocol):
    """Probes and orders candidates, best first."""

    async def rank_sources(
        self,
        sources: Sequence[CandidateSource],
        cancel: CancelToken | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> RankingReport: ...
