"""Task queues that run promise continuations.

Every continuation is deferred to a later turn of a single logical queue. By
default that queue is the running :mod:`asyncio` loop; :class:`ManualQueue`
offers the same contract with explicit draining and a virtual clock so
ordering can be asserted step by step.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from threading import Lock
from typing import Any, Protocol, runtime_checkable

from .errors import NoActiveQueue


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class TaskQueue(Protocol):
    """Minimal scheduling surface a promise needs from its host."""

    def call_soon(self, callback: Callable[..., object], *args: Any) -> None: ...

    def call_soon_threadsafe(
        self, callback: Callable[..., object], *args: Any
    ) -> None: ...

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: Any
    ) -> TimerHandle: ...


class LoopQueue:
    """Adapt an :class:`asyncio.AbstractEventLoop` to :class:`TaskQueue`."""

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def call_soon(self, callback: Callable[..., object], *args: Any) -> None:
        self._loop.call_soon(callback, *args)

    def call_soon_threadsafe(
        self, callback: Callable[..., object], *args: Any
    ) -> None:
        self._loop.call_soon_threadsafe(callback, *args)

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: Any
    ) -> asyncio.TimerHandle:
        return self._loop.call_later(delay, callback, *args)

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"LoopQueue({self._loop!r})"


class ManualTimer:
    """Handle returned by :meth:`ManualQueue.call_later`."""

    __slots__ = ("when", "callback", "args", "cancelled")

    def __init__(
        self, when: float, callback: Callable[..., object], args: tuple[Any, ...]
    ) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualQueue:
    """FIFO task queue drained explicitly by the caller.

    Nothing runs until :meth:`step`, :meth:`run_until_idle` or
    :meth:`advance` is called, which makes "not in the same turn" observable
    from plain synchronous tests. Timers use a virtual clock that only moves
    through :meth:`advance`.

    >>> queue = ManualQueue()
    >>> seen = []
    >>> queue.call_soon(seen.append, "first")
    >>> _ = queue.call_later(1.0, seen.append, "late")
    >>> seen
    []
    >>> queue.run_until_idle()
    1
    >>> queue.advance(1.0)
    1
    >>> seen
    ['first', 'late']
    """

    def __init__(self) -> None:
        self._ready: deque[tuple[Callable[..., object], tuple[Any, ...]]] = deque()
        self._timers: list[tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()
        self._lock = Lock()
        self._time = 0.0

    @property
    def time(self) -> float:
        return self._time

    @property
    def pending(self) -> int:
        """Number of callbacks ready to run."""

        return len(self._ready)

    def call_soon(self, callback: Callable[..., object], *args: Any) -> None:
        with self._lock:
            self._ready.append((callback, args))

    # A lock already guards the ready deque, so foreign threads may enqueue.
    call_soon_threadsafe = call_soon

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: Any
    ) -> ManualTimer:
        timer = ManualTimer(self._time + max(delay, 0.0), callback, args)
        with self._lock:
            heapq.heappush(self._timers, (timer.when, next(self._sequence), timer))
        return timer

    def step(self) -> bool:
        """Run the oldest ready callback. Return ``False`` when none is ready."""

        with self._lock:
            if not self._ready:
                return False
            callback, args = self._ready.popleft()
        self._run(callback, args)
        return True

    def run_until_idle(self) -> int:
        """Drain ready callbacks, including ones they schedule, and count them."""

        count = 0
        while self.step():
            count += 1
        return count

    def advance(self, seconds: float) -> int:
        """Move the virtual clock forward, firing due timers in deadline order.

        Ready callbacks are drained after each timer so continuations of a
        timer run before a later timer fires. Returns the number of callbacks
        run, timers included.
        """

        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        target = self._time + seconds
        count = self.run_until_idle()
        while True:
            with self._lock:
                while self._timers and self._timers[0][2].cancelled:
                    heapq.heappop(self._timers)
                if not self._timers or self._timers[0][0] > target:
                    break
                when, _, timer = heapq.heappop(self._timers)
            self._time = max(self._time, when)
            self._run(timer.callback, timer.args)
            count += 1 + self.run_until_idle()
        self._time = target
        return count

    def _run(self, callback: Callable[..., object], args: tuple[Any, ...]) -> None:
        # Continuations drained here may build promises, so bind this queue.
        token = _ACTIVE_QUEUE.set(self)
        try:
            callback(*args)
        finally:
            _ACTIVE_QUEUE.reset(token)


_ACTIVE_QUEUE: ContextVar[TaskQueue | None] = ContextVar(
    "unidefer_active_queue", default=None
)


def current_queue() -> TaskQueue:
    """Return the queue new promises should bind to.

    The queue bound with :func:`use_queue` wins; otherwise the running asyncio
    loop is used.
    """

    queue = _ACTIVE_QUEUE.get()
    if queue is not None:
        return queue
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        raise NoActiveQueue(
            "no task queue bound; run inside an asyncio loop or use_queue()"
        ) from None
    return LoopQueue(loop)


@contextmanager
def use_queue(queue: TaskQueue) -> Iterator[TaskQueue]:
    """Bind *queue* as the active task queue for the enclosed block."""

    token = _ACTIVE_QUEUE.set(queue)
    try:
        yield queue
    finally:
        _ACTIVE_QUEUE.reset(token)


__all__ = [
    "LoopQueue",
    "ManualQueue",
    "ManualTimer",
    "TaskQueue",
    "TimerHandle",
    "current_queue",
    "use_queue",
]
