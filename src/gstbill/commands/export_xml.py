"""Export invoices to the XML sales register."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..export import write_sales_xml
from ..settings import ProfileProvider
from ._runtime import add_db_argument, add_period_arguments, open_configured_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export invoices as an XML sales register.")
    parser.add_argument("output", type=Path, help="Destination .xml file")
    parser.add_argument(
        "--include-cancelled",
        action="store_true",
        help="Also export cancelled invoices (marked with their status).",
    )
    add_period_arguments(parser)
    add_db_argument(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _config, store = open_configured_store(args)
    with store:
        profile = ProfileProvider(store.load_profile).profile
        invoices = store.list_invoices(
            start=args.start, end=args.end, include_cancelled=args.include_cancelled
        )

    destination = write_sales_xml(invoices, profile, args.output)
    print(f"{len(invoices)} invoices exported to: {destination}")
    return 0
