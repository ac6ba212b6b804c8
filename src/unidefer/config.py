from __future__ import annotations

import logging
import os
from dataclasses import dataclass


@dataclass(slots=True)
class DeferConfig:
    """Settings for the opt-in diagnostics around rejected promises.

    Tracking stays off by default: an unobserved rejection is silent unless
    the caller asks for it to be surfaced.
    """

    track_unhandled: bool = False
    unhandled_log_level: int = logging.ERROR

    @classmethod
    def from_env(cls) -> DeferConfig:
        """Load overrides from environment variables.

        Supported variables (all optional):

        ``UNIDEFER_TRACK_UNHANDLED``
            Boolean flag (``1``/``true``/``yes``/``on``) enabling unhandled
            rejection reports through the ``unidefer.unhandled`` logger.
        ``UNIDEFER_UNHANDLED_LOG_LEVEL``
            Level name (``WARNING``) or integer used for those reports.
        """

        def _parse_bool(value: str | None) -> bool | None:
            if value is None:
                return None
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
            return None

        def _parse_level(value: str | None) -> int | None:
            if value is None:
                return None
            raw = value.strip()
            if raw.isdigit():
                return int(raw)
            level = logging.getLevelName(raw.upper())
            return level if isinstance(level, int) else None

        env = os.environ

        track_flag = _parse_bool(env.get("UNIDEFER_TRACK_UNHANDLED"))
        level = _parse_level(env.get("UNIDEFER_UNHANDLED_LOG_LEVEL"))

        return cls(
            track_unhandled=track_flag if track_flag is not None else False,
            unhandled_log_level=level if level is not None else logging.ERROR,
        )
