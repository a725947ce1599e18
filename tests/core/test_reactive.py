"""
Tests for observables, reactions and debouncing.
"""

import asyncio

import pytest

from ongoing_game.core.reactive import (
    BackgroundTasks,
    Debouncer,
    Observable,
    Reaction,
    shallow_equal,
)


class Box(Observable):
    """Minimal observable holding one value."""

    def __init__(self, value=None):
        super().__init__()
        self.value = value

    def set(self, value):
        self.value = value
        self.notify("value")


class TestShallowEqual:
    """Test cases for shallow_equal."""

    def test_sequences_compare_elementwise(self):
        """Test one-level comparison of lists and tuples."""
        a, b = object(), object()
        assert shallow_equal([a, b], [a, b])
        assert shallow_equal((1, "x"), (1, "x"))
        assert not shallow_equal([a, b], [b, a])
        assert not shallow_equal([a], [a, b])

    def test_mappings_compare_by_key(self):
        """Test one-level comparison of dicts."""
        assert shallow_equal({"a": 1}, {"a": 1})
        assert not shallow_equal({"a": 1}, {"a": 2})
        assert not shallow_equal({"a": 1}, {"b": 1})

    def test_scalars(self):
        """Test plain values."""
        assert shallow_equal(3, 3)
        assert not shallow_equal(3, "3")


class TestObservable:
    """Test cases for Observable."""

    def test_subscribe_and_unsubscribe(self):
        """Test that unsubscribed handlers stop receiving changes."""
        box = Box()
        topics = []
        unsubscribe = box.subscribe(topics.append)

        box.set(1)
        unsubscribe()
        box.set(2)

        assert topics == ["value"]
        assert not box.unsubscribe(topics.append)

    def test_failing_handler_does_not_stop_others(self):
        """Test that a broken handler is isolated."""
        box = Box()
        seen = []

        def broken(_):
            raise RuntimeError("broken")

        box.subscribe(broken)
        box.subscribe(seen.append)
        box.set(1)

        assert seen == ["value"]


class TestDebouncer:
    """Test cases for Debouncer."""

    @pytest.mark.asyncio
    async def test_bursts_coalesce_into_one_call(self):
        """Test that triggers inside the window produce one call."""
        calls = []
        debouncer = Debouncer(0.05, lambda: calls.append(asyncio.get_running_loop().time()))

        last_trigger = None
        for _ in range(5):
            last_trigger = asyncio.get_running_loop().time()
            debouncer.trigger()
            await asyncio.sleep(0.01)

        await asyncio.sleep(0.1)

        assert len(calls) == 1
        assert calls[0] - last_trigger >= 0.049

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test that a cancelled call never fires."""
        calls = []
        debouncer = Debouncer(0.02, lambda: calls.append(1))

        debouncer.trigger()
        assert debouncer.pending
        debouncer.cancel()
        await asyncio.sleep(0.05)

        assert calls == []
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_flush(self):
        """Test firing a pending call immediately."""
        calls = []
        debouncer = Debouncer(10, lambda: calls.append(1))

        debouncer.flush()
        assert calls == []

        debouncer.trigger()
        debouncer.flush()
        assert calls == [1]
        assert not debouncer.pending


class TestReaction:
    """Test cases for Reaction."""

    def test_runs_only_when_projection_changes(self):
        """Test that unrelated notifications are filtered out."""
        box = Box({"watched": 1, "other": 1})
        seen = []
        Reaction([box], lambda: box.value["watched"], seen.append).start()

        box.set({"watched": 1, "other": 2})
        box.set({"watched": 2, "other": 2})
        box.set({"watched": 2, "other": 3})

        assert seen == [2]

    def test_fire_immediately(self):
        """Test running the effect with the initial projection."""
        box = Box(5)
        seen = []
        Reaction([box], lambda: box.value, seen.append, fire_immediately=True).start()

        assert seen == [5]

    def test_shallow_projection(self):
        """Test that a rebuilt but equal sequence does not trigger."""
        box = Box([1, 2])
        seen = []
        Reaction([box], lambda: list(box.value), seen.append).start()

        box.set([1, 2])
        box.set([1, 2, 3])

        assert seen == [[1, 2, 3]]

    def test_dispose(self):
        """Test that a disposed reaction stops reacting."""
        box = Box(0)
        seen = []
        reaction = Reaction([box], lambda: box.value, seen.append).start()

        reaction.dispose()
        box.set(1)

        assert seen == []

    @pytest.mark.asyncio
    async def test_delayed_reaction_coalesces(self):
        """Test that a debounced reaction runs once with the latest value."""
        box = Box(0)
        seen = []
        Reaction([box], lambda: box.value, seen.append, delay=0.03).start()

        for value in range(1, 6):
            box.set(value)
        await asyncio.sleep(0.08)

        assert seen == [5]

    @pytest.mark.asyncio
    async def test_delayed_reaction_skips_round_trip(self):
        """Test that a change reverted inside the window does not run the effect."""
        box = Box(0)
        seen = []
        Reaction([box], lambda: box.value, seen.append, delay=0.03).start()

        box.set(1)
        box.set(0)
        await asyncio.sleep(0.08)

        assert seen == []


class TestBackgroundTasks:
    """Test cases for BackgroundTasks."""

    @pytest.mark.asyncio
    async def test_drain_waits_for_nested_tasks(self):
        """Test that tasks spawned by tasks are awaited too."""
        tasks = BackgroundTasks()
        done = []

        async def child():
            await asyncio.sleep(0.01)
            done.append("child")

        async def parent():
            tasks.spawn(child())
            done.append("parent")

        tasks.spawn(parent())
        await tasks.drain()

        assert done == ["parent", "child"]
        assert len(tasks) == 0

    @pytest.mark.asyncio
    async def test_failed_task_is_released(self):
        """Test that a failing task is logged and forgotten."""
        tasks = BackgroundTasks()

        async def broken():
            raise RuntimeError("broken")

        tasks.spawn(broken())
        await tasks.drain()

        assert len(tasks) == 0

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        """Test cancelling outstanding tasks."""
        tasks = BackgroundTasks()
        started = asyncio.Event()

        async def forever():
            started.set()
            await asyncio.sleep(10)

        task = tasks.spawn(forever())
        await started.wait()
        await tasks.cancel_all()

        assert task.cancelled()
