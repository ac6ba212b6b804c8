"""Deferred values with JavaScript-style promise semantics for Python.

`unidefer` exposes a :class:`Promise` that settles once, chains with
:meth:`Promise.then`, adopts nested promises, and aggregates with ``all``,
``race``, ``all_settled`` and ``any``. Continuations run on the running
asyncio loop, or on a :class:`ManualQueue` when tests need to step through
turns by hand.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from . import combinators
from .adapters import adapt, submit, wrap_future
from .api import configure, create, last_unhandled, rejected, reset, resolved
from .combinators import all, all_settled, any, race
from .config import DeferConfig
from .diagnostics import (
    UnhandledRejection,
    add_rejection_listener,
    observe_unhandled,
    remove_rejection_listener,
)
from .errors import (
    AggregateRejection,
    DeferredError,
    DeferredTimeout,
    InvalidStateError,
    NoActiveQueue,
    RejectionError,
)
from .promise import Fulfilled, Pending, Promise, Rejected
from .queues import LoopQueue, ManualQueue, TaskQueue, current_queue, use_queue
from .timers import delay, timeout

__all__ = [
    "AggregateRejection",
    "DeferConfig",
    "DeferredError",
    "DeferredTimeout",
    "Fulfilled",
    "InvalidStateError",
    "LoopQueue",
    "ManualQueue",
    "NoActiveQueue",
    "Pending",
    "Promise",
    "Rejected",
    "RejectionError",
    "TaskQueue",
    "UnhandledRejection",
    "adapt",
    "add_rejection_listener",
    "all",
    "all_settled",
    "any",
    "combinators",
    "configure",
    "create",
    "current_queue",
    "delay",
    "last_unhandled",
    "observe_unhandled",
    "race",
    "rejected",
    "remove_rejection_listener",
    "reset",
    "resolved",
    "submit",
    "timeout",
    "use_queue",
    "wrap_future",
]

try:
    __version__ = version("unidefer")
except PackageNotFoundError:  # pragma: no cover - during local dev
    __version__ = "0.0.0"
