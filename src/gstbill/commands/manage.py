"""Database housekeeping: first-run seeding and invoice cancellation."""

from __future__ import annotations

import argparse
from typing import Sequence

from ..storage import seed_database
from ._runtime import add_db_argument, open_configured_store


def build_init_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Create the database and add sample data to empty tables."
    )
    add_db_argument(parser)
    return parser


def init_main(argv: Sequence[str] | None = None) -> int:
    args = build_init_parser().parse_args(argv)

    _config, store = open_configured_store(args)
    with store:
        seeded = seed_database(store)

    state = "seeded with sample data" if seeded else "already initialised"
    print(f"Database {store.path}: {state}")
    return 0


def build_cancel_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cancel an invoice and return its quantities to stock."
    )
    parser.add_argument("invoice_no", help="Invoice number, e.g. GD/2024/001")
    add_db_argument(parser)
    return parser


def cancel_main(argv: Sequence[str] | None = None) -> int:
    args = build_cancel_parser().parse_args(argv)

    _config, store = open_configured_store(args)
    with store:
        invoice = store.cancel_invoice(args.invoice_no)

    print(f"Invoice {invoice.invoice_no} cancelled; stock restored for {len(invoice.items)} lines")
    return 0
