"""Runtime settings for a chesslink peer.

Defaults live on LinkConfig; each can be overridden with a CHESSLINK_*
environment variable. The command line only carries address and role.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

_ENV_PREFIX = "CHESSLINK_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class LinkConfig:
    """Settings shared by the channel, the handshake and the arbiter.

    Timeouts are in seconds; None waits forever.
    """

    name: str = "chesslink"
    propose_white: bool = True
    connect_backoff: float = 1.0
    poll_interval: float = 0.01
    handshake_timeout: float | None = None
    ack_timeout: float | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> LinkConfig:
        """Build a config from CHESSLINK_* variables over the defaults.

        Args:
            environ: Mapping to read instead of os.environ.

        Raises:
            ValueError: If a variable holds a value of the wrong shape.
        """
        env = os.environ if environ is None else environ
        overrides: dict = {}

        name = env.get(_ENV_PREFIX + "NAME")
        if name:
            overrides["name"] = name

        propose = env.get(_ENV_PREFIX + "PROPOSE_WHITE")
        if propose is not None:
            overrides["propose_white"] = _parse_bool("PROPOSE_WHITE", propose)

        for key in ("connect_backoff", "poll_interval"):
            raw = env.get(_ENV_PREFIX + key.upper())
            if raw is not None:
                overrides[key] = _parse_seconds(key.upper(), raw, optional=False)

        for key in ("handshake_timeout", "ack_timeout"):
            raw = env.get(_ENV_PREFIX + key.upper())
            if raw is not None:
                overrides[key] = _parse_seconds(key.upper(), raw, optional=True)

        level = env.get(_ENV_PREFIX + "LOG_LEVEL")
        if level is not None:
            level = level.strip().upper()
            if level not in _LOG_LEVELS:
                raise ValueError(f"{_ENV_PREFIX}LOG_LEVEL: unknown level {level!r}")
            overrides["log_level"] = level

        return replace(cls(), **overrides)


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{_ENV_PREFIX}{key}: expected a boolean, got {raw!r}")


def _parse_seconds(key: str, raw: str, optional: bool) -> float | None:
    value = raw.strip().lower()
    if optional and value in ("", "none"):
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{key}: expected seconds, got {raw!r}") from None
    if seconds < 0:
        raise ValueError(f"{_ENV_PREFIX}{key}: must not be negative")
    return seconds
