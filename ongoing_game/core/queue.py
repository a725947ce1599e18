"""
Priority-based concurrency queue for loader work.

Every network call made by a loader goes through one of these queues. Items
run highest-priority first, at most ``concurrency`` at a time. Items are bound
to a cancellation token: pending items are dropped as soon as their token is
cancelled, running items finish but their result is discarded.
"""

import asyncio
import heapq
import itertools
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, TypeVar
import structlog

from .cancellation import CancellationToken
from .exceptions import TaskAbortedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class TaskStatus(Enum):
    """Task execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class QueuedTask:
    """Queue item data structure."""

    fn: Callable[[], Awaitable[Any]]
    priority: float
    future: "asyncio.Future[Any]"
    token: Optional[CancellationToken] = None
    label: str = ""
    task_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PriorityTaskQueue:
    """Priority queue with a runtime-adjustable concurrency limit."""

    def __init__(self, name: str, concurrency: int = 1):
        """
        Initialize task queue.

        Args:
            name: Queue name used in logs
            concurrency: Maximum number of concurrently running items
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.name = name
        self._concurrency = concurrency
        self._heap: List[Tuple[float, int, QueuedTask]] = []
        self._sequence = itertools.count()
        self._runners: Set["asyncio.Task[None]"] = set()
        self.stats: Dict[str, int] = defaultdict(int)
        self.peak_running = 0

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @concurrency.setter
    def concurrency(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"concurrency must be at least 1, got {value}")
        self._concurrency = value
        logger.debug("Queue concurrency changed", queue=self.name, concurrency=value)
        if self._heap:
            self._pump()

    @property
    def running(self) -> int:
        return len(self._runners)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, task in self._heap if not task.future.done())

    async def add(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        priority: float = 0,
        token: Optional[CancellationToken] = None,
        label: str = "",
    ) -> T:
        """
        Queue ``fn`` and wait for its result.

        Raises:
            TaskAbortedError: ``token`` was cancelled before the item started,
                or before its result could be handed back.
        """
        if token is not None and token.cancelled:
            self.stats["tasks_dropped"] += 1
            raise TaskAbortedError(reason=token.reason)

        loop = asyncio.get_running_loop()
        task = QueuedTask(fn=fn, priority=priority, future=loop.create_future(), token=token, label=label)

        def on_cancel(cancelled: CancellationToken) -> None:
            if task.status is TaskStatus.PENDING and not task.future.done():
                task.status = TaskStatus.ABORTED
                task.completed_at = datetime.now()
                task.future.set_exception(TaskAbortedError(reason=cancelled.reason))
                self.stats["tasks_dropped"] += 1

        if token is not None:
            token.add_callback(on_cancel)

        # heapq is a min-heap, so negate the priority; the sequence keeps FIFO per priority
        heapq.heappush(self._heap, (-priority, next(self._sequence), task))
        self.stats["tasks_added"] += 1
        self._pump()

        try:
            return await task.future
        finally:
            if token is not None:
                token.remove_callback(on_cancel)

    def _pump(self) -> None:
        """Start pending items until the concurrency limit is reached."""
        while self._heap and len(self._runners) < self._concurrency:
            _, _, task = heapq.heappop(self._heap)
            if task.future.done():
                # Dropped by its token, or the caller stopped waiting
                continue

            task.status = TaskStatus.RUNNING
            task.started_at = datetime.now()
            runner = asyncio.create_task(self._run(task))
            self._runners.add(runner)
            runner.add_done_callback(self._on_runner_done)
            self.peak_running = max(self.peak_running, len(self._runners))

    def _on_runner_done(self, runner: "asyncio.Task[None]") -> None:
        self._runners.discard(runner)
        self._pump()

    async def _run(self, task: QueuedTask) -> None:
        """Run one item and settle its future."""
        try:
            result = await task.fn()
        except asyncio.CancelledError:
            task.status = TaskStatus.ABORTED
            if not task.future.done():
                task.future.cancel()
            raise
        except Exception as e:
            if task.token is not None and task.token.cancelled:
                self._abort(task)
                return

            task.status = TaskStatus.FAILED
            task.completed_at = datetime.now()
            self.stats["tasks_failed"] += 1
            if not task.future.done():
                task.future.set_exception(e)
            return

        # Completion-point check: a superseded item never hands back its result
        if task.token is not None and task.token.cancelled:
            self._abort(task)
            return

        task.status = TaskStatus.COMPLETED
        task.completed_at = datetime.now()
        self.stats["tasks_completed"] += 1
        if not task.future.done():
            task.future.set_result(result)

    def _abort(self, task: QueuedTask) -> None:
        task.status = TaskStatus.ABORTED
        task.completed_at = datetime.now()
        self.stats["results_discarded"] += 1
        if not task.future.done():
            reason = task.token.reason if task.token is not None else None
            task.future.set_exception(TaskAbortedError(reason=reason))

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until nothing is pending or running."""
        while self._runners or self.pending:
            await asyncio.sleep(poll_interval)

    async def close(self) -> None:
        """Drop pending items and cancel running ones."""
        for _, _, task in self._heap:
            if not task.future.done():
                task.future.cancel()
        self._heap.clear()

        runners = list(self._runners)
        for runner in runners:
            runner.cancel()
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

        logger.info("Queue closed", queue=self.name, stats=dict(self.stats))

    def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics."""
        return {
            "name": self.name,
            "concurrency": self._concurrency,
            "running": self.running,
            "pending": self.pending,
            "peak_running": self.peak_running,
            "stats": dict(self.stats),
        }
