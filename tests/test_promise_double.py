"""Turn-by-turn checks on a manually drained queue."""

from __future__ import annotations

import pytest

from unidefer import (
    Fulfilled,
    InvalidStateError,
    ManualQueue,
    NoActiveQueue,
    Pending,
    Promise,
    Rejected,
    RejectionError,
    current_queue,
    rejected,
    resolved,
    use_queue,
)


def test_continuation_never_runs_in_the_same_turn(queue: ManualQueue) -> None:
    seen: list[int] = []
    derived = resolved(5).then(lambda value: seen.append(value) or value)
    assert seen == []
    assert derived.is_pending
    assert queue.pending == 1
    queue.run_until_idle()
    assert seen == [5]
    assert derived.result() == 5


def test_continuations_run_in_registration_order(queue: ManualQueue) -> None:
    promise, resolve, _ = Promise.with_resolvers()
    order: list[str] = []
    promise.then(lambda _: order.append("a"))
    promise.then(lambda _: order.append("b"))
    resolve(None)
    promise.then(lambda _: order.append("c"))
    assert order == []
    queue.run_until_idle()
    assert order == ["a", "b", "c"]


def test_only_first_capability_call_counts(queue: ManualQueue) -> None:
    captured = {}

    def executor(resolve, reject) -> None:
        captured["resolve"] = resolve
        captured["reject"] = reject
        resolve(1)
        reject(2)
        resolve(3)

    promise = Promise(executor)
    assert promise.state == Fulfilled(1)
    captured["reject"]("late")
    assert promise.state == Fulfilled(1)


def test_reject_then_resolve_keeps_rejection(queue: ManualQueue) -> None:
    promise = Promise(lambda resolve, reject: (reject("no"), resolve("yes")))
    assert promise.state == Rejected("no")
    promise.recover(lambda reason: reason)


def test_executor_raising_after_settling_is_ignored(queue: ManualQueue) -> None:
    def executor(resolve, reject) -> None:
        resolve(1)
        raise RuntimeError("ignored")

    assert Promise(executor).state == Fulfilled(1)


def test_resolve_with_pending_promise_locks_in(queue: ManualQueue) -> None:
    inner, resolve_inner, _ = Promise.with_resolvers()
    outer, resolve_outer, reject_outer = Promise.with_resolvers()
    resolve_outer(inner)
    reject_outer("ignored")
    assert outer.is_pending
    resolve_inner("value")
    queue.run_until_idle()
    assert outer.result() == "value"


def test_resolving_with_itself_rejects(queue: ManualQueue) -> None:
    promise, resolve, _ = Promise.with_resolvers()
    resolve(promise)
    assert promise.is_rejected
    with pytest.raises(TypeError):
        promise.result()


def test_deep_nesting_is_flattened(queue: ManualQueue) -> None:
    def nest(depth: int) -> Promise:
        if depth == 0:
            return resolved("deep")
        return Promise(lambda resolve, _: resolve(nest(depth - 1)))

    derived = resolved().then(lambda _: nest(5))
    queue.run_until_idle()
    assert derived.result() == "deep"


def test_resolve_returns_existing_promise(queue: ManualQueue) -> None:
    original = resolved(1)
    assert Promise.resolve(original) is original


def test_reject_does_not_adopt(queue: ManualQueue) -> None:
    inner = resolved(1)
    outer = rejected(inner)
    assert outer.state == Rejected(inner)
    outer.recover(lambda reason: reason)


def test_handler_returning_rejected_promise_rejects(queue: ManualQueue) -> None:
    derived = resolved(1).then(lambda value: rejected(value + 1))
    queue.run_until_idle()
    assert derived.state == Rejected(2)
    with pytest.raises(RejectionError) as excinfo:
        derived.result()
    assert excinfo.value.reason == 2


def test_state_machine_properties(queue: ManualQueue) -> None:
    promise, resolve, _ = Promise.with_resolvers()
    assert promise.state == Pending()
    assert (promise.is_pending, promise.is_fulfilled, promise.is_rejected) == (
        True,
        False,
        False,
    )
    resolve(1)
    assert (promise.is_pending, promise.is_fulfilled, promise.is_rejected) == (
        False,
        True,
        False,
    )


def test_result_while_pending_raises(queue: ManualQueue) -> None:
    promise, _, _ = Promise.with_resolvers()
    with pytest.raises(InvalidStateError):
        promise.result()


def test_derived_promise_keeps_label(queue: ManualQueue) -> None:
    source = Promise.resolve(1, label="source")
    derived = source.then(lambda value: value)
    assert derived.label == "source"
    assert derived.id > source.id
    assert "label='source'" in repr(derived)
    assert "pending" in repr(derived)


def test_promises_bind_to_explicit_queue() -> None:
    other = ManualQueue()
    promise = Promise(lambda resolve, _: resolve(1), queue=other)
    derived = promise.then(lambda value: value + 1)
    assert derived.queue is other
    other.run_until_idle()
    assert derived.result() == 2


def test_no_queue_outside_event_loop() -> None:
    with pytest.raises(NoActiveQueue):
        resolved(1)


class Abort(BaseException):
    pass


def test_base_exceptions_escape_handlers(queue: ManualQueue) -> None:
    def interrupt(_: object) -> None:
        raise Abort

    derived = resolved(1).then(interrupt)
    with pytest.raises(Abort):
        queue.run_until_idle()
    assert derived.is_pending


def test_drained_continuations_can_build_promises() -> None:
    manual = ManualQueue()
    with use_queue(manual):
        nested = resolved(1).then(lambda value: resolved(value + 1))
        built = resolved(1).then(
            lambda value: Promise(lambda resolve, _: resolve(value + 2))
        )
    assert manual.pending == 2
    manual.run_until_idle()
    assert nested.result() == 2
    assert built.result() == 3


def test_timers_fired_by_advance_can_build_promises() -> None:
    manual = ManualQueue()
    seen: list[Promise] = []
    manual.call_later(1.0, lambda: seen.append(resolved("late")))
    manual.advance(1.0)
    assert seen[0].queue is manual
    assert seen[0].result() == "late"


def test_drained_callbacks_restore_outer_binding() -> None:
    manual = ManualQueue()
    manual.call_soon(lambda: None)
    manual.run_until_idle()
    with pytest.raises(NoActiveQueue):
        current_queue()
