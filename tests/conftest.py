from __future__ import annotations

from collections.abc import Iterator

import pytest

from unidefer import DeferConfig, ManualQueue, configure, reset, use_queue


@pytest.fixture(autouse=True)
def restore_diagnostics() -> Iterator[None]:
    reset()
    configure(DeferConfig())
    yield
    configure(DeferConfig())
    reset()


@pytest.fixture
def queue() -> Iterator[ManualQueue]:
    manual = ManualQueue()
    with use_queue(manual):
        yield manual
