"""Aggregate several promises into one.

The names mirror the JavaScript combinators, so ``all`` and ``any`` shadow the
builtins when imported directly; ``from unidefer import combinators`` keeps
them namespaced. Items that are not promises are lifted with
:meth:`Promise.resolve`.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .errors import AggregateRejection
from .promise import Fulfilled, Promise, Rejected, Reject, Resolve
from .queues import TaskQueue, current_queue


def all(
    promises: Iterable[Any],
    *,
    label: str | None = None,
    queue: TaskQueue | None = None,
) -> Promise[list[Any]]:
    """Fulfill with every value, in input order, or reject with the first reason.

    The combinator stops listening after the first rejection; the remaining
    inputs keep running but their outcome is not observed.
    """

    items = list(promises)
    active_queue = queue if queue is not None else current_queue()

    def executor(resolve: Resolve, reject: Reject) -> None:
        if not items:
            resolve([])
            return
        results: list[Any] = [None] * len(items)
        remaining = len(items)

        def _store(index: int, value: Any) -> None:
            nonlocal remaining
            results[index] = value
            remaining -= 1
            if remaining == 0:
                resolve(results)

        for index, item in enumerate(items):
            Promise.resolve(item, queue=active_queue).then(
                lambda value, index=index: _store(index, value), reject
            )

    return Promise(executor, label=label, queue=active_queue)


def race(
    promises: Iterable[Any],
    *,
    label: str | None = None,
    queue: TaskQueue | None = None,
) -> Promise[Any]:
    """Settle like the first input to settle.

    Inputs that are already settled win in input order. An empty input never
    settles.
    """

    items = list(promises)
    active_queue = queue if queue is not None else current_queue()

    def executor(resolve: Resolve, reject: Reject) -> None:
        for item in items:
            Promise.resolve(item, queue=active_queue).then(resolve, reject)

    return Promise(executor, label=label, queue=active_queue)


def all_settled(
    promises: Iterable[Any],
    *,
    label: str | None = None,
    queue: TaskQueue | None = None,
) -> Promise[list[Fulfilled[Any] | Rejected]]:
    """Wait for every input and fulfill with their final states in input order."""

    items = list(promises)
    active_queue = queue if queue is not None else current_queue()

    def executor(resolve: Resolve, reject: Reject) -> None:
        if not items:
            resolve([])
            return
        states: list[Any] = [None] * len(items)
        remaining = len(items)

        def _store(index: int, state: Fulfilled[Any] | Rejected) -> None:
            nonlocal remaining
            states[index] = state
            remaining -= 1
            if remaining == 0:
                resolve(states)

        for index, item in enumerate(items):
            Promise.resolve(item, queue=active_queue).then(
                lambda value, index=index: _store(index, Fulfilled(value)),
                lambda reason, index=index: _store(index, Rejected(reason)),
            )

    return Promise(executor, label=label, queue=active_queue)


def any(
    promises: Iterable[Any],
    *,
    label: str | None = None,
    queue: TaskQueue | None = None,
) -> Promise[Any]:
    """Fulfill with the first fulfillment, skipping rejections.

    When every input rejects, the result rejects with
    :class:`~unidefer.errors.AggregateRejection` listing the reasons in input
    order. An empty input rejects straight away.
    """

    items = list(promises)
    active_queue = queue if queue is not None else current_queue()

    def executor(resolve: Resolve, reject: Reject) -> None:
        reasons: list[Any] = [None] * len(items)
        remaining = len(items)
        if not items:
            reject(AggregateRejection([]))
            return

        def _store(index: int, reason: Any) -> None:
            nonlocal remaining
            reasons[index] = reason
            remaining -= 1
            if remaining == 0:
                reject(AggregateRejection(reasons))

        for index, item in enumerate(items):
            Promise.resolve(item, queue=active_queue).then(
                resolve, lambda reason, index=index: _store(index, reason)
            )

    return Promise(executor, label=label, queue=active_queue)


__all__ = ["all", "all_settled", "any", "race"]
