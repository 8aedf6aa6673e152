"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_ENV_PREFIX = "GSTBILL_"
DEFAULT_DATA_DIR = Path.home() / ".gstbill"
DEFAULT_DB_FILENAME = "gstbill.sqlite3"


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by the CLI commands."""

    data_dir: Path
    db_file: Path
    log_dir: Path
    invoice_prefix: str = "GD"
    low_stock_threshold: int = 10
    expiry_window_days: int = 90


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build an :class:`AppConfig` from ``environ`` (defaults to ``os.environ``).

    Recognised variables: ``GSTBILL_DATA_DIR``, ``GSTBILL_DB_FILE``,
    ``GSTBILL_LOG_DIR``, ``GSTBILL_INVOICE_PREFIX``, ``GSTBILL_LOW_STOCK``
    and ``GSTBILL_EXPIRY_DAYS``.
    """

    env = os.environ if environ is None else environ

    data_dir = Path(_get(env, "DATA_DIR") or DEFAULT_DATA_DIR).expanduser()
    db_file = Path(_get(env, "DB_FILE") or data_dir / DEFAULT_DB_FILENAME).expanduser()
    log_dir = Path(_get(env, "LOG_DIR") or data_dir / "logs").expanduser()

    prefix = _get(env, "INVOICE_PREFIX") or "GD"
    if "/" in prefix:
        raise ValueError(f"{_ENV_PREFIX}INVOICE_PREFIX cannot contain '/': {prefix!r}")

    return AppConfig(
        data_dir=data_dir,
        db_file=db_file,
        log_dir=log_dir,
        invoice_prefix=prefix,
        low_stock_threshold=_get_int(env, "LOW_STOCK", 10),
        expiry_window_days=_get_int(env, "EXPIRY_DAYS", 90),
    )


def _get(env: Mapping[str, str], name: str) -> str:
    return env.get(_ENV_PREFIX + name, "").strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{_ENV_PREFIX}{name} cannot be negative, got {value}")
    return value


__all__ = ["AppConfig", "DEFAULT_DATA_DIR", "load_config"]
