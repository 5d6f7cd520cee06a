"""
Runtime configuration for the hook harness.

Values come from environment variables, are read once on first use and are
immutable for the rest of the run.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


__all__ = [
    "HarnessConfig",
    "load_harness_config",
    "get_harness_config",
    "reset_config_cache",
]

DEFAULT_HOST = "127.0.0.1"
DEFAULT_API_PREFIX = "/v1"


@dataclass(frozen=True)
class HarnessConfig:
    """Immutable harness configuration."""

    # Stub server
    host: str
    port: int
    api_prefix: str

    # Collector timing
    poll_interval_ms: int
    quiet_ms: int
    collect_timeout_ms: int
    min_events: int

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def quiet_s(self) -> float:
        return self.quiet_ms / 1000.0

    @property
    def collect_timeout_s(self) -> float:
        return self.collect_timeout_ms / 1000.0


def _read_int_env(names: list[str], *, default: int, minimum: int = 1) -> int:
    for name in names:
        raw = os.getenv(name, "").strip()
        if not raw:
            continue
        try:
            value = int(raw)
        except ValueError:
            continue
        return max(minimum, value)
    return max(minimum, default)


def _read_str_env(names: list[str], *, default: str) -> str:
    for name in names:
        raw = os.getenv(name, "").strip()
        if raw:
            return raw
    return default


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip().rstrip("/")
    if not prefix:
        return ""
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def load_harness_config() -> HarnessConfig:
    """
    Load harness configuration from the environment.

    Unparseable integers fall back to the default; values below the allowed
    minimum are clamped.
    """
    return HarnessConfig(
        host=_read_str_env(["HOOK_HARNESS_HOST"], default=DEFAULT_HOST),
        port=_read_int_env(["HOOK_HARNESS_PORT"], default=0, minimum=0),
        api_prefix=_normalize_prefix(
            _read_str_env(["HOOK_HARNESS_API_PREFIX"], default=DEFAULT_API_PREFIX)
        ),
        poll_interval_ms=_read_int_env(["HOOK_HARNESS_POLL_INTERVAL_MS"], default=25, minimum=1),
        quiet_ms=_read_int_env(["HOOK_HARNESS_QUIET_MS"], default=200, minimum=0),
        collect_timeout_ms=_read_int_env(
            ["HOOK_HARNESS_COLLECT_TIMEOUT_MS"], default=5000, minimum=1
        ),
        min_events=_read_int_env(["HOOK_HARNESS_MIN_EVENTS"], default=4, minimum=0),
    )


@lru_cache(maxsize=1)
def get_harness_config() -> HarnessConfig:
    return load_harness_config()


def reset_config_cache() -> None:
    """Reset config cache. Only for testing."""
    get_harness_config.cache_clear()
