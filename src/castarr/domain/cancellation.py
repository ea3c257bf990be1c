"""Cooperative cancellation context threaded through probe and fetch calls.

A single :class:`CancelToken` is shared by every probe of a ranking
cycle.  Tokens compose with :meth:`CancelToken.any`: the linked token
fires as soon as any of its parents fires (session-level + call-level).

Usage::

    token = CancelToken()
    resp = await token.guard(client.get(url))   # raises OperationCancelled
    ...
    token.cancel("superseded")
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Awaitable
from typing import TypeVar

from castarr.domain.exceptions import OperationCancelled

T = TypeVar("T")


class CancelToken:
    """One-shot cancellation signal backed by :class:`asyncio.Event`."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._linked: weakref.WeakSet[CancelToken] = weakref.WeakSet()
        self.reason: str | None = None

    @classmethod
    def any(cls, *parents: CancelToken | None) -> CancelToken:
        """Return a token that fires when any non-None parent fires."""
        linked = cls()
        for parent in parents:
            if parent is None:
                continue
            if parent.cancelled:
                linked.cancel(parent.reason or "cancelled")
            else:
                parent._linked.add(linked)
        return linked

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        """Fire the token.  Idempotent; the first reason wins."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        for child in list(self._linked):
            child.cancel(reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the token fires first.

        The pending operation is cancelled and :class:`OperationCancelled`
        raised as soon as the token fires.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled(self.reason or "cancelled")
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except BaseException:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelled(self.reason or "cancelled")
