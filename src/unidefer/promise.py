"""The deferred value primitive.

A :class:`Promise` is a handle to one eventual outcome. Its state is a tagged
variant (:class:`Pending`, :class:`Fulfilled`, :class:`Rejected`) that moves
out of ``Pending`` exactly once. Continuations attached with
:meth:`Promise.then` never run in the turn that attached them: they are queued
on the task queue the promise was created under.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from . import diagnostics
from .errors import InvalidStateError, RejectionError
from .queues import TaskQueue, current_queue

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Pending:
    pass


@dataclass(frozen=True, slots=True)
class Fulfilled(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: Any


State = Union[Pending, Fulfilled[Any], Rejected]
PENDING = Pending()

Resolve = Callable[..., None]
Reject = Callable[..., None]
Executor = Callable[[Resolve, Reject], object]
Handler = Optional[Callable[[Any], Any]]

# (derived promise or None for internal subscriptions, on_fulfilled, on_rejected)
_Reaction = tuple[Optional["Promise[Any]"], Handler, Handler]

_IDS = itertools.count(1)


def as_exception(reason: Any) -> BaseException:
    """Return *reason* if it can be raised, otherwise wrap it."""

    if isinstance(reason, BaseException):
        return reason
    return RejectionError(reason)


class Promise(Generic[T]):
    """A value that settles later, once, as fulfilled or rejected.

    ``executor`` is called synchronously with two capabilities, ``resolve``
    and ``reject``. Only the first call to either takes effect. ``resolve``
    adopts the state of a promise passed to it; an exception raised by
    ``executor`` before settling rejects the promise. Without an executor the
    promise stays pending until settled internally, see
    :meth:`with_resolvers`.

    The promise binds to ``queue`` or, when omitted, to
    :func:`~unidefer.queues.current_queue`.
    """

    __slots__ = (
        "_state",
        "_reactions",
        "_queue",
        "_locked",
        "_handled",
        "_reported",
        "id",
        "label",
        "__weakref__",
    )

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        label: str | None = None,
        queue: TaskQueue | None = None,
    ) -> None:
        self._queue: TaskQueue = queue if queue is not None else current_queue()
        self._state: State = PENDING
        self._reactions: list[_Reaction] = []
        self._locked = False
        self._handled = False
        self._reported = False
        self.id = next(_IDS)
        self.label = label
        if executor is None:
            return
        resolve, reject = self._capabilities()
        try:
            executor(resolve, reject)
        except Exception as exc:
            reject(exc)

    # ------------------------------------------------------------------

    @classmethod
    def resolve(
        cls,
        value: Any = None,
        *,
        label: str | None = None,
        queue: TaskQueue | None = None,
    ) -> Promise[Any]:
        """Return a promise fulfilled with *value*.

        A promise is returned unchanged so nesting never happens.
        """

        if isinstance(value, Promise):
            return value
        promise: Promise[Any] = cls(label=label, queue=queue)
        promise._fulfill(value)
        return promise

    @classmethod
    def reject(
        cls,
        reason: Any = None,
        *,
        label: str | None = None,
        queue: TaskQueue | None = None,
    ) -> Promise[Any]:
        """Return a promise rejected with *reason*, which is never adopted."""

        promise: Promise[Any] = cls(label=label, queue=queue)
        promise._reject(reason)
        return promise

    @classmethod
    def with_resolvers(
        cls, *, label: str | None = None, queue: TaskQueue | None = None
    ) -> tuple[Promise[Any], Resolve, Reject]:
        """Create a pending promise together with its two capabilities."""

        promise: Promise[Any] = cls(label=label, queue=queue)
        resolve, reject = promise._capabilities()
        return promise, resolve, reject

    # ------------------------------------------------------------------

    @property
    def state(self) -> State:
        return self._state

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def is_pending(self) -> bool:
        return isinstance(self._state, Pending)

    @property
    def is_fulfilled(self) -> bool:
        return isinstance(self._state, Fulfilled)

    @property
    def is_rejected(self) -> bool:
        return isinstance(self._state, Rejected)

    def result(self) -> T:
        """Return the fulfillment value without waiting.

        A rejection is raised (wrapped in :class:`RejectionError` when the
        reason is not an exception) and counts as handling it. Raises
        :class:`InvalidStateError` while pending.
        """

        state = self._state
        if isinstance(state, Fulfilled):
            return state.value
        if isinstance(state, Rejected):
            self._mark_handled()
            raise as_exception(state.reason)
        raise InvalidStateError("promise is still pending")

    def then(
        self,
        on_fulfilled: Handler = None,
        on_rejected: Handler = None,
    ) -> Promise[Any]:
        """Attach handlers and return the derived promise.

        A missing handler passes the outcome through unchanged, which is how a
        rejection skips ahead to the nearest rejection handler. The derived
        promise settles from the handler's return value (adopting returned
        promises) or rejects with whatever the handler raises.
        """

        derived: Promise[Any] = Promise(label=self.label, queue=self._queue)
        self._register((derived, on_fulfilled, on_rejected))
        return derived

    def recover(self, on_rejected: Callable[[Any], Any]) -> Promise[Any]:
        """Shorthand for ``then(None, on_rejected)``."""

        return self.then(None, on_rejected)

    def __await__(self) -> Generator[Any, None, T]:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _on_fulfilled(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def _on_rejected(reason: Any) -> None:
            if not future.done():
                future.set_exception(as_exception(reason))

        self._subscribe(_on_fulfilled, _on_rejected)
        return (yield from future.__await__())

    def __repr__(self) -> str:
        base = f"<Promise #{self.id}"
        if self.label:
            base += f" label={self.label!r}"
        state = self._state
        if isinstance(state, Fulfilled):
            return base + f" fulfilled value={state.value!r}>"
        if isinstance(state, Rejected):
            return base + f" rejected reason={state.reason!r}>"
        return base + " pending>"

    # ------------------------------------------------------------------

    def _capabilities(self) -> tuple[Resolve, Reject]:
        def resolve(value: Any = None) -> None:
            if self._locked:
                return
            self._locked = True
            self._resolve(value)

        def reject(reason: Any = None) -> None:
            if self._locked:
                return
            self._locked = True
            self._reject(reason)

        return resolve, reject

    def _resolve(self, value: Any) -> None:
        if value is self:
            self._reject(TypeError("a promise cannot be resolved with itself"))
            return
        if isinstance(value, Promise):
            value._subscribe(self._fulfill, self._reject)
            return
        self._fulfill(value)

    def _fulfill(self, value: Any) -> None:
        self._transition(Fulfilled(value))

    def _reject(self, reason: Any) -> None:
        if not self._transition(Rejected(reason)):
            return
        if not self._handled and diagnostics.tracking_enabled():
            self._queue.call_soon(self._check_handled)

    def _transition(self, state: State) -> bool:
        if not isinstance(self._state, Pending):
            return False
        self._state = state
        reactions, self._reactions = self._reactions, []
        for reaction in reactions:
            self._queue.call_soon(self._run_reaction, reaction)
        return True

    def _subscribe(
        self, on_fulfilled: Callable[[Any], Any], on_rejected: Callable[[Any], Any]
    ) -> None:
        self._register((None, on_fulfilled, on_rejected))

    def _register(self, reaction: _Reaction) -> None:
        self._mark_handled()
        if isinstance(self._state, Pending):
            self._reactions.append(reaction)
        else:
            self._queue.call_soon(self._run_reaction, reaction)

    def _run_reaction(self, reaction: _Reaction) -> None:
        derived, on_fulfilled, on_rejected = reaction
        state = self._state
        if isinstance(state, Fulfilled):
            handler, argument = on_fulfilled, state.value
        else:
            handler, argument = on_rejected, state.reason  # type: ignore[union-attr]

        if derived is None:
            if handler is not None:
                handler(argument)
            return
        if handler is None:
            if isinstance(state, Fulfilled):
                derived._fulfill(argument)
            else:
                derived._reject(argument)
            return
        try:
            result = handler(argument)
        except Exception as exc:
            derived._reject(exc)
            return
        derived._resolve(result)

    def _mark_handled(self) -> None:
        self._handled = True
        if self._reported:
            self._reported = False
            diagnostics.report(self, "handled-late")

    def _check_handled(self) -> None:
        if self._handled:
            return
        self._reported = True
        diagnostics.report(self, "unhandled")


__all__ = [
    "Executor",
    "Fulfilled",
    "PENDING",
    "Pending",
    "Promise",
    "Rejected",
    "State",
    "as_exception",
]
