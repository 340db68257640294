"""
Tests for the keyed debounce timers.
"""

import asyncio

from ..scheduling import DebounceScheduler


def run(coro):
    return asyncio.run(coro)


class TestDebounceScheduler:
    """Test DebounceScheduler"""

    def test_burst_collapses_to_last_call(self):
        calls = []

        async def scenario():
            timers = DebounceScheduler()
            for n in range(5):
                timers.schedule("save", 0.02, lambda n=n: calls.append(n))
            assert timers.pending("save")
            await asyncio.sleep(0.06)
            assert not timers.pending("save")

        run(scenario())
        assert calls == [4]

    def test_keys_are_independent(self):
        calls = []

        async def scenario():
            timers = DebounceScheduler()
            timers.schedule("a", 0.01, lambda: calls.append("a"))
            timers.schedule("b", 0.01, lambda: calls.append("b"))
            await asyncio.sleep(0.05)

        run(scenario())
        assert sorted(calls) == ["a", "b"]

    def test_cancel(self):
        calls = []

        async def scenario():
            timers = DebounceScheduler()
            timers.schedule("a", 0.01, lambda: calls.append("a"))
            assert timers.cancel("a")
            assert not timers.cancel("a")
            timers.schedule("b", 0.01, lambda: calls.append("b"))
            timers.cancel_all()
            await asyncio.sleep(0.05)

        run(scenario())
        assert calls == []

    def test_coroutine_callbacks_are_drained(self):
        done = []

        async def slow():
            await asyncio.sleep(0.02)
            done.append(True)

        async def scenario():
            timers = DebounceScheduler()
            timers.schedule("a", 0, slow)
            await asyncio.sleep(0.005)
            await timers.drain()

        run(scenario())
        assert done == [True]
