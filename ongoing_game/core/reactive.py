"""Publish/subscribe primitives used to react to state changes.

State holders are ``Observable``: every mutation calls ``notify``. A
``Reaction`` watches one projection of one or more observables and runs its
effect only when that projection changes (shallow comparison), optionally
coalescing bursts of changes through a ``Debouncer``.
"""

import asyncio
from typing import Any, Callable, Coroutine, Generic, List, Optional, Sequence, Set, TypeVar
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ChangeHandler = Callable[[str], None]


def shallow_equal(a: Any, b: Any) -> bool:
    """Compare sequences and mappings one level deep."""
    if a is b:
        return True

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(x is y or x == y for x, y in zip(a, b))

    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(a[k] is b[k] or a[k] == b[k] for k in a)

    return a == b


class Observable:
    """Mixin for state holders that broadcast change notifications."""

    def __init__(self) -> None:
        self._subscribers: List[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """Subscribe to changes; returns a function that unsubscribes."""
        self._subscribers.append(handler)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> bool:
        try:
            self._subscribers.remove(handler)
            return True
        except ValueError:
            return False

    def notify(self, topic: str = "changed") -> None:
        """Publish a change to all subscribers."""
        for handler in list(self._subscribers):
            try:
                handler(topic)
            except Exception:
                # One broken reaction must not stop the others from seeing the change
                logger.exception("Change handler failed", topic=topic)


class Debouncer:
    """Run a callback once after ``delay`` seconds without new triggers."""

    def __init__(self, delay: float, callback: Callable[[], None], name: str = "debouncer"):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """(Re)start the quiet window. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Fire now if a call is pending."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def _fire(self) -> None:
        self._handle = None
        try:
            self.callback()
        except Exception:
            logger.exception("Debounced callback failed", debouncer=self.name)


class Reaction(Generic[T]):
    """Run ``effect`` whenever ``projection`` changes."""

    def __init__(
        self,
        sources: Sequence[Observable],
        projection: Callable[[], T],
        effect: Callable[[T], None],
        *,
        equals: Callable[[Any, Any], bool] = shallow_equal,
        delay: Optional[float] = None,
        fire_immediately: bool = False,
        name: str = "reaction",
    ):
        self.name = name
        self._sources = list(sources)
        self._projection = projection
        self._effect = effect
        self._equals = equals
        self._fire_immediately = fire_immediately
        self._debouncer = Debouncer(delay, self._fire, name=name) if delay else None
        self._unsubscribers: List[Callable[[], None]] = []
        self._seen: Any = None
        self._last_run: Any = None
        self._has_run = False
        self._disposed = False

    def start(self) -> "Reaction[T]":
        for source in self._sources:
            self._unsubscribers.append(source.subscribe(self._on_change))

        self._seen = self._projection()
        if self._fire_immediately:
            self._fire()
        else:
            self._last_run = self._seen
            self._has_run = True
        return self

    def dispose(self) -> None:
        self._disposed = True
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._debouncer is not None:
            self._debouncer.cancel()

    def cancel_pending(self) -> None:
        """Drop a scheduled but not yet fired effect."""
        if self._debouncer is not None:
            self._debouncer.cancel()

    def _on_change(self, topic: str) -> None:
        if self._disposed:
            return

        value = self._projection()
        if self._equals(value, self._seen):
            return

        self._seen = value
        if self._debouncer is not None:
            self._debouncer.trigger()
        else:
            self._fire()

    def _fire(self) -> None:
        value = self._seen
        if self._has_run and self._equals(value, self._last_run):
            return

        self._last_run = value
        self._has_run = True
        self._effect(value)


class BackgroundTasks:
    """Holds references to fire-and-forget tasks started by reaction effects."""

    def __init__(self, name: str = "background"):
        self.name = name
        self._tasks: Set["asyncio.Task[Any]"] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], label: str = "") -> "asyncio.Task[Any]":
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(t, label))
        return task

    def _on_done(self, task: "asyncio.Task[Any]", label: str) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Background task failed",
                group=self.name,
                label=label,
                error=str(task.exception()),
                exc_info=task.exception(),
            )

    async def drain(self) -> None:
        """Wait until every task, including ones spawned meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
