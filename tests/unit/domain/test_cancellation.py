"""Tests for CancelToken."""

from __future__ import annotations

import asyncio

import pytest

from castarr.domain.cancellation import CancelToken
from castarr.domain.exceptions import OperationCancelled


class TestCancel:
    def test_starts_uncancelled(self) -> None:
        token = CancelToken()
        assert token.cancelled is False
        assert token.reason is None

    def test_cancel_is_idempotent_first_reason_wins(self) -> None:
        token = CancelToken()
        token.cancel("superseded")
        token.cancel("reset")
        assert token.cancelled is True
        assert token.reason == "superseded"

    def test_raise_if_cancelled(self) -> None:
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(OperationCancelled):
            token.raise_if_cancelled()


class TestAny:
    def test_fires_when_either_parent_fires(self) -> None:
        session, call = CancelToken(), CancelToken()
        linked = CancelToken.any(session, call)
        assert linked.cancelled is False

        call.cancel("user")

        assert linked.cancelled is True
        assert linked.reason == "user"
        assert session.cancelled is False

    def test_already_cancelled_parent(self) -> None:
        parent = CancelToken()
        parent.cancel("gone")
        assert CancelToken.any(parent).cancelled is True

    def test_ignores_none(self) -> None:
        parent = CancelToken()
        linked = CancelToken.any(None, parent)
        parent.cancel()
        assert linked.cancelled is True

    def test_linked_cancel_does_not_propagate_up(self) -> None:
        parent = CancelToken()
        linked = CancelToken.any(parent)
        linked.cancel()
        assert parent.cancelled is False


class TestGuard:
    async def test_returns_result(self) -> None:
        token = CancelToken()

        async def work() -> int:
            return 7

        assert await token.guard(work()) == 7

    async def test_propagates_exception(self) -> None:
        token = CancelToken()

        async def work() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await token.guard(work())

    async def test_pre_cancelled_raises_immediately(self) -> None:
        token = CancelToken()
        token.cancel()
        coro = asyncio.sleep(10)
        with pytest.raises(OperationCancelled):
            await token.guard(coro)
        coro.close()

    async def test_cancel_aborts_in_flight_work(self) -> None:
        token = CancelToken()
        started = asyncio.Event()
        finished = False

        async def slow() -> None:
            nonlocal finished
            started.set()
            await asyncio.sleep(10)
            finished = True

        async def cancel_soon() -> None:
            await started.wait()
            token.cancel("stop")

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(OperationCancelled, match="stop"):
            await asyncio.wait_for(token.guard(slow()), timeout=2)
        await canceller
        assert finished is False
