"""Bridges from other asynchronous styles into promises."""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from .promise import Promise
from .queues import TaskQueue, current_queue

T = TypeVar("T")
P = ParamSpec("P")


def adapt(func: Callable[..., object]) -> Callable[..., Promise[Any]]:
    """Turn a function taking a trailing ``callback(error, *results)`` into one
    returning a promise.

    The promise rejects with ``error`` when it is truthy and otherwise
    fulfills with the single result (``None`` when there is none, a tuple
    when there are several). Only the first callback invocation counts. The
    callback may fire on another thread; settlement hops back to the queue the
    promise belongs to.

    >>> from unidefer import ManualQueue, use_queue
    >>> def add(a, b, callback):
    ...     callback(None, a + b)
    >>> queue = ManualQueue()
    >>> with use_queue(queue):
    ...     promise = adapt(add)(2, 3)
    >>> _ = queue.run_until_idle()
    >>> promise.result()
    5
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Promise[Any]:
        queue = current_queue()

        def executor(resolve: Callable[..., None], reject: Callable[..., None]) -> None:
            calling = True
            owner = threading.get_ident()

            def callback(error: Any = None, *results: Any) -> None:
                if error:
                    settle, outcome = reject, error
                elif len(results) <= 1:
                    settle, outcome = resolve, results[0] if results else None
                else:
                    settle, outcome = resolve, results
                # Synchronous callbacks settle in place, like an executor would.
                if calling and threading.get_ident() == owner:
                    settle(outcome)
                else:
                    queue.call_soon_threadsafe(settle, outcome)

            try:
                func(*args, callback, **kwargs)
            finally:
                calling = False

        return Promise(executor, queue=queue)

    return wrapper


def wrap_future(
    future: concurrent.futures.Future[T] | asyncio.Future[T],
    *,
    queue: TaskQueue | None = None,
    label: str | None = None,
) -> Promise[T]:
    """Mirror :func:`asyncio.wrap_future`, producing a promise instead.

    Cancellation of *future* rejects the promise with the
    :class:`~concurrent.futures.CancelledError` it raises.
    """

    promise, resolve, reject = Promise.with_resolvers(label=label, queue=queue)
    active_queue = promise.queue

    def _settle(done: Any) -> None:
        if done.cancelled():
            try:
                done.result()
            except BaseException as exc:  # asyncio's CancelledError is not an Exception
                reject(exc)
            return
        error = done.exception()
        if error is not None:
            reject(error)
        else:
            resolve(done.result())

    def _on_done(done: Any) -> None:
        active_queue.call_soon_threadsafe(_settle, done)

    future.add_done_callback(_on_done)
    return promise


def submit(
    executor: concurrent.futures.Executor,
    func: Callable[P, T],
    /,
    *args: P.args,
    **kwargs: P.kwargs,
) -> Promise[T]:
    """Submit *func* to *executor* and return the outcome as a promise.

    >>> from concurrent.futures import ThreadPoolExecutor
    >>> from unidefer import ManualQueue, use_queue
    >>> queue = ManualQueue()
    >>> with ThreadPoolExecutor(max_workers=1) as pool, use_queue(queue):
    ...     promise = submit(pool, pow, 2, 5)
    >>> _ = queue.run_until_idle()
    >>> promise.result()
    32
    """

    return wrap_future(executor.submit(func, *args, **kwargs))


__all__ = ["adapt", "submit", "wrap_future"]
