"""Exceptions raised by :mod:`unidefer`."""

from __future__ import annotations

from asyncio import InvalidStateError
from typing import Any


class DeferredError(Exception):
    """Base class for errors originating in unidefer itself."""


class RejectionError(DeferredError):
    """Raised when a promise rejected with a non-exception reason is observed.

    Rejection reasons can be any object. Python can only raise exceptions, so
    awaiting such a promise (or calling :meth:`Promise.result`) raises this
    wrapper instead and keeps the raw value on :attr:`reason`.
    """

    def __init__(self, reason: Any) -> None:
        super().__init__(f"promise rejected with {reason!r}")
        self.reason = reason


class AggregateRejection(DeferredError):
    """Every input of :func:`unidefer.any` rejected."""

    def __init__(self, reasons: list[Any]) -> None:
        super().__init__(f"all {len(reasons)} promises were rejected")
        self.reasons = reasons


class DeferredTimeout(DeferredError, TimeoutError):
    """A promise did not settle within the duration given to ``timeout``."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"promise did not settle within {seconds} seconds")
        self.seconds = seconds


class NoActiveQueue(DeferredError, RuntimeError):
    """No task queue is bound and no asyncio event loop is running."""


__all__ = [
    "AggregateRejection",
    "DeferredError",
    "DeferredTimeout",
    "InvalidStateError",
    "NoActiveQueue",
    "RejectionError",
]
