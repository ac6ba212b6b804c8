from __future__ import annotations

import logging
import os
from unittest import mock

from unidefer import DeferConfig, reset
from unidefer.diagnostics import current_config, tracking_enabled


def test_defer_config_defaults() -> None:
    config = DeferConfig()
    assert config.track_unhandled is False
    assert config.unhandled_log_level == logging.ERROR


def test_defer_config_from_env() -> None:
    with mock.patch.dict(
        os.environ,
        {
            "UNIDEFER_TRACK_UNHANDLED": "yes",
            "UNIDEFER_UNHANDLED_LOG_LEVEL": "warning",
        },
        clear=True,
    ):
        config = DeferConfig.from_env()

    assert config.track_unhandled is True
    assert config.unhandled_log_level == logging.WARNING


def test_defer_config_numeric_level() -> None:
    with mock.patch.dict(
        os.environ, {"UNIDEFER_UNHANDLED_LOG_LEVEL": "15"}, clear=True
    ):
        config = DeferConfig.from_env()

    assert config.unhandled_log_level == 15


def test_defer_config_from_env_invalid_values() -> None:
    with mock.patch.dict(
        os.environ,
        {
            "UNIDEFER_TRACK_UNHANDLED": "maybe",
            "UNIDEFER_UNHANDLED_LOG_LEVEL": "loud",
        },
        clear=True,
    ):
        config = DeferConfig.from_env()

    assert config.track_unhandled is False
    assert config.unhandled_log_level == logging.ERROR


def test_reset_reloads_environment() -> None:
    with mock.patch.dict(os.environ, {"UNIDEFER_TRACK_UNHANDLED": "1"}, clear=True):
        reset()
        assert current_config().track_unhandled is True
        assert tracking_enabled() is True
    reset()
    assert tracking_enabled() is False
