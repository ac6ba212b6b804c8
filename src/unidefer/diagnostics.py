"""Opt-in reporting of rejected promises nobody observed.

A rejection with no rejection handler is silent by default. When tracking is
enabled (through :class:`~unidefer.config.DeferConfig` or by registering a
listener) a promise still unhandled one queue turn after it rejected is
reported, and reported again as ``handled-late`` if a handler shows up
afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from .config import DeferConfig

if TYPE_CHECKING:
    from .promise import Promise

RejectionKind = Literal["unhandled", "handled-late"]

_LOGGER = logging.getLogger("unidefer.unhandled")


@dataclass(slots=True)
class UnhandledRejection:
    promise_id: int
    label: str | None
    reason: Any
    kind: RejectionKind = "unhandled"

    def as_dict(self) -> dict[str, Any]:
        """Represent the report as plain data for logging or testing."""

        return {
            "promise_id": self.promise_id,
            "label": self.label,
            "reason": self.reason,
            "kind": self.kind,
        }


class RejectionTracker:
    """Holds the diagnostics configuration and the registered listeners."""

    def __init__(self, *, config: DeferConfig | None = None) -> None:
        self._config = config or DeferConfig.from_env()
        self._listeners: list[Callable[[UnhandledRejection], None]] = []
        self._last: UnhandledRejection | None = None

    @property
    def config(self) -> DeferConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.track_unhandled or bool(self._listeners)

    @property
    def last(self) -> UnhandledRejection | None:
        """Return the most recent report."""

        return self._last

    def configure(self, config: DeferConfig) -> None:
        self._config = config
        self._last = None

    def reset(self) -> None:
        self._config = DeferConfig.from_env()
        self._listeners.clear()
        self._last = None

    def report(self, promise: Promise[Any], kind: RejectionKind) -> None:
        record = UnhandledRejection(
            promise_id=promise.id,
            label=promise.label,
            reason=promise.state.reason,  # type: ignore[union-attr]
            kind=kind,
        )
        self._last = record
        if self._config.track_unhandled:
            _LOGGER.log(
                self._config.unhandled_log_level,
                "%s rejection promise=%s label=%s reason=%r",
                record.kind,
                record.promise_id,
                record.label,
                record.reason,
            )
        self._notify_listeners(record)

    def add_listener(self, listener: Callable[[UnhandledRejection], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(
        self, listener: Callable[[UnhandledRejection], None]
    ) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:  # pragma: no cover - listener not registered
            pass

    def _notify_listeners(self, record: UnhandledRejection) -> None:
        for listener in list(self._listeners):
            listener(record)


_GLOBAL_TRACKER = RejectionTracker()


def tracking_enabled() -> bool:
    return _GLOBAL_TRACKER.enabled


def report(promise: Promise[Any], kind: RejectionKind = "unhandled") -> None:
    _GLOBAL_TRACKER.report(promise, kind)


def configure(config: DeferConfig) -> None:
    _GLOBAL_TRACKER.configure(config)


def current_config() -> DeferConfig:
    return _GLOBAL_TRACKER.config


def reset() -> None:
    _GLOBAL_TRACKER.reset()


def last_unhandled() -> UnhandledRejection | None:
    """Return the most recent unhandled-rejection report."""

    return _GLOBAL_TRACKER.last


def add_rejection_listener(
    listener: Callable[[UnhandledRejection], None],
) -> None:
    """Register a callback invoked for every unhandled-rejection report.

    Registering a listener turns tracking on even when the configuration
    leaves it off.
    """

    _GLOBAL_TRACKER.add_listener(listener)


def remove_rejection_listener(
    listener: Callable[[UnhandledRejection], None],
) -> None:
    """Remove a previously registered rejection listener."""

    _GLOBAL_TRACKER.remove_listener(listener)


@contextmanager
def observe_unhandled(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.WARNING,
) -> Iterator[None]:
    """Context manager that logs unhandled rejections during its scope."""

    active_logger = logger or _LOGGER

    def _listener(record: UnhandledRejection) -> None:
        active_logger.log(
            level,
            "%s rejection promise=%s label=%s reason=%r",
            record.kind,
            record.promise_id,
            record.label,
            record.reason,
        )

    add_rejection_listener(_listener)
    try:
        yield
    finally:
        remove_rejection_listener(_listener)


__all__ = [
    "RejectionKind",
    "RejectionTracker",
    "UnhandledRejection",
    "add_rejection_listener",
    "configure",
    "current_config",
    "last_unhandled",
    "observe_unhandled",
    "remove_rejection_listener",
    "report",
    "reset",
    "tracking_enabled",
]
