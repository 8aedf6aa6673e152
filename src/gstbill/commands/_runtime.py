"""Helpers shared by the command modules."""

from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import date
from pathlib import Path

from ..config import AppConfig, load_config
from ..storage import SQLiteStore, open_store


def add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database to use (default: GSTBILL_DB_FILE or ~/.gstbill).",
    )


def add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from",
        dest="start",
        type=date.fromisoformat,
        default=None,
        help="First invoice date to include (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--to",
        dest="end",
        type=date.fromisoformat,
        default=None,
        help="Last invoice date to include (YYYY-MM-DD).",
    )


def open_configured_store(args: argparse.Namespace) -> tuple[AppConfig, SQLiteStore]:
    """Load the configuration, honouring ``--db``, and open the store."""

    config = load_config()
    if getattr(args, "db", None) is not None:
        config = replace(config, db_file=args.db)
    return config, open_store(config)
