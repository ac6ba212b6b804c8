"""Time-bound helpers layered on the task queue's ``call_later``."""

from __future__ import annotations

from typing import Any, TypeVar

from .combinators import race
from .errors import DeferredTimeout
from .promise import Promise, Reject, Resolve
from .queues import current_queue

T = TypeVar("T")


def delay(
    seconds: float, value: Any = None, *, label: str | None = None
) -> Promise[Any]:
    """Return a promise fulfilled with *value* after at least *seconds*."""

    if seconds < 0:
        raise ValueError("delay must be non-negative")
    queue = current_queue()

    def executor(resolve: Resolve, reject: Reject) -> None:
        queue.call_later(seconds, resolve, value)

    return Promise(executor, label=label, queue=queue)


def timeout(promise: Promise[T], seconds: float) -> Promise[T]:
    """Reject with :class:`DeferredTimeout` unless *promise* settles in time.

    Only the returned promise is affected; *promise* keeps running and its
    late outcome is ignored.
    """

    if seconds < 0:
        raise ValueError("timeout must be non-negative")
    queue = promise.queue
    timer = None

    def executor(resolve: Resolve, reject: Reject) -> None:
        nonlocal timer
        timer = queue.call_later(seconds, reject, DeferredTimeout(seconds))

    deadline: Promise[Any] = Promise(executor, label=promise.label, queue=queue)

    def _cancel(_: Any) -> None:
        if timer is not None:
            timer.cancel()

    promise.then(_cancel, _cancel)
    return race([promise, deadline], queue=queue)


__all__ = ["delay", "timeout"]
