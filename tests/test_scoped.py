"""Tests for run_scoped() and try_catch_finally()."""

import asyncio

import pytest

from monkeymock.scoped import run_scoped, try_catch_finally


class Counter:
    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1


class TestRunScopedSync:
    """Test cleanup for synchronous actions."""

    def test_cleanup_after_return(self):
        cleanup = Counter()
        assert run_scoped(lambda: 42, cleanup) == 42
        assert cleanup.count == 1

    def test_cleanup_after_raise(self):
        """Test that cleanup runs exactly once when action raises."""
        cleanup = Counter()

        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_scoped(fail, cleanup)
        assert cleanup.count == 1


class TestRunScopedAsync:
    """Test cleanup deferred until an awaitable settles."""

    def test_cleanup_waits_for_awaitable(self):
        cleanup = Counter()
        seen = []

        async def body():
            await asyncio.sleep(0)
            seen.append(cleanup.count)
            return "done"

        pending = run_scoped(body, cleanup)
        assert cleanup.count == 0

        assert asyncio.run(pending) == "done"
        assert seen == [0]
        assert cleanup.count == 1

    def test_cleanup_after_async_raise(self):
        cleanup = Counter()

        async def body():
            await asyncio.sleep(0)
            raise ValueError("late")

        pending = run_scoped(body, cleanup)
        with pytest.raises(ValueError, match="late"):
            asyncio.run(pending)
        assert cleanup.count == 1


class TestTryCatchFinally:
    """Test the error handler of try_catch_finally()."""

    def test_handle_replaces_error(self):
        cleanup = Counter()

        def fail():
            raise KeyError("x")

        result = try_catch_finally(fail, lambda error: "handled", cleanup)
        assert result == "handled"
        assert cleanup.count == 1

    def test_handle_applies_to_async_error(self):
        async def fail():
            raise KeyError("x")

        pending = try_catch_finally(fail, lambda error: type(error).__name__)
        assert asyncio.run(pending) == "KeyError"

    def test_no_cleanup(self):
        assert try_catch_finally(lambda: 1) == 1
