"""Generate the sales register workbook."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Sequence

from ..config import AppConfig
from ..reporting import build_sales_register, write_excel_report
from ._runtime import add_db_argument, add_period_arguments, open_configured_store


def default_report_destination(config: AppConfig, today: date) -> Path:
    return config.data_dir / "reports" / f"sales_register_{today:%Y%m%d}.xlsx"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Write an Excel sales register with GST totals per rate and per invoice."
    )
    parser.add_argument("--output", type=Path, default=None, help="Destination .xlsx file")
    add_period_arguments(parser)
    add_db_argument(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config, store = open_configured_store(args)
    with store:
        invoices = store.list_invoices(start=args.start, end=args.end)

    register = build_sales_register(invoices)
    destination = args.output or default_report_destination(config, date.today())
    write_excel_report(register, destination)
    print(f"Sales register saved to: {destination}")

    return 0


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
