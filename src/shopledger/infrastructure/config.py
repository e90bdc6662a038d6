"""Runtime configuration, read from ``SHOPLEDGER_*`` environment variables.

Values are validated here, at the boundary, so the rest of the code can
rely on typed settings.  CLI options override the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from shopledger.domain.service.ledger import ReleasePolicy

ENV_PREFIX = "SHOPLEDGER_"

# When installed in editable mode the project root is the repo root.
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """A setting is missing or malformed."""


@dataclass(frozen=True)
class Settings:

    data_dir: Path = DEFAULT_DATA_DIR
    release_policy: ReleasePolicy = ReleasePolicy.CLAMP
    max_retries: int = 3
    retry_backoff: float = 0.05
    lock_timeout: float = 5.0
    log_level: str = "WARNING"
    low_stock_threshold: int = 5
    reorder_point: int = 0
    reorder_quantity: int = 0

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        def raw(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name.upper())
            return value.strip() if value is not None and value.strip() else None

        parsers = {
            "data_dir": lambda v: Path(v).expanduser(),
            "release_policy": parse_release_policy,
            "log_level": parse_log_level,
            "max_retries": lambda v: _non_negative("max_retries", v, int),
            "low_stock_threshold": lambda v: _non_negative("low_stock_threshold", v, int),
            "reorder_point": lambda v: _non_negative("reorder_point", v, int),
            "reorder_quantity": lambda v: _non_negative("reorder_quantity", v, int),
            "retry_backoff": lambda v: _non_negative("retry_backoff", v, float),
            "lock_timeout": lambda v: _non_negative("lock_timeout", v, float),
        }
        for name, parse in parsers.items():
            value = raw(name)
            if value is not None:
                values[name] = parse(value)
        return Settings(**values)

    def override(self, **changes: Any) -> Settings:
        """Return a copy with every non-None change applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def parse_release_policy(value: str) -> ReleasePolicy:
    try:
        return ReleasePolicy(value.lower())
    except ValueError:
        choices = ", ".join(p.value for p in ReleasePolicy)
        raise ConfigurationError(
            f"Unknown release policy {value!r} (expected one of: {choices})"
        ) from None


def parse_log_level(value: str) -> str:
    level = value.upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level {value!r} (expected one of: {', '.join(LOG_LEVELS)})"
        )
    return level


def _non_negative(name: str, value: str, kind: type) -> Any:
    try:
        parsed = kind(value)
    except ValueError:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name.upper()} must be a {kind.__name__}, got {value!r}"
        ) from None
    if parsed < 0:
        raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} cannot be negative")
    return parsed
