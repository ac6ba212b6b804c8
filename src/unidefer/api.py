from __future__ import annotations

from typing import Any

from . import diagnostics
from .config import DeferConfig
from .diagnostics import UnhandledRejection
from .promise import Executor, Promise


def create(executor: Executor, *, label: str | None = None) -> Promise[Any]:
    """Build a promise settled by the capabilities handed to *executor*.

    >>> import asyncio
    >>> async def stdlib() -> int:
    ...     future = asyncio.get_running_loop().create_future()
    ...     future.set_result(1)
    ...     return await future
    >>> async def main() -> int:
    ...     return await create(lambda resolve, reject: resolve(1))
    >>> asyncio.run(stdlib())
    1
    >>> asyncio.run(main())
    1
    """

    return Promise(executor, label=label)


def resolved(value: Any = None, *, label: str | None = None) -> Promise[Any]:
    """Return an already fulfilled promise, or *value* itself if it is one.

    >>> from unidefer import ManualQueue, use_queue
    >>> queue = ManualQueue()
    >>> with use_queue(queue):
    ...     chained = resolved(1).then(lambda value: value + 1)
    >>> chained.is_pending
    True
    >>> queue.run_until_idle()
    1
    >>> chained.result()
    2
    """

    return Promise.resolve(value, label=label)


def rejected(reason: Any = None, *, label: str | None = None) -> Promise[Any]:
    """Return an already rejected promise.

    >>> from unidefer import ManualQueue, use_queue
    >>> queue = ManualQueue()
    >>> with use_queue(queue):
    ...     recovered = rejected(1).recover(lambda reason: reason + 2)
    >>> _ = queue.run_until_idle()
    >>> recovered.result()
    3
    """

    return Promise.reject(reason, label=label)


def configure(config: DeferConfig) -> None:
    """Replace the global diagnostics configuration.

    >>> from unidefer import DeferConfig
    >>> configure(DeferConfig(track_unhandled=True))
    >>> from unidefer.diagnostics import current_config
    >>> current_config().track_unhandled
    True
    >>> reset()
    """

    diagnostics.configure(config)


def reset() -> None:
    """Drop rejection listeners and reload configuration from the environment.

    Use this helper in tests to make sure global diagnostics state does not
    leak between cases.

    >>> reset()
    """

    diagnostics.reset()


def last_unhandled() -> UnhandledRejection | None:
    """Expose the most recent unhandled-rejection report.

    >>> from unidefer import ManualQueue, observe_unhandled, use_queue
    >>> queue = ManualQueue()
    >>> with observe_unhandled(), use_queue(queue):
    ...     lost = rejected("boom", label="lost")
    ...     _ = queue.run_until_idle()
    >>> last_unhandled().as_dict()["label"]
    'lost'
    >>> reset()
    """

    return diagnostics.last_unhandled()
