"""Import products or parties from an Excel sheet."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from ..importer import ImportReport, import_parties, import_products
from ..logging import ExcelLogger, ExcelLoggerConfig
from ._runtime import add_db_argument, open_configured_store

_IMPORTERS = {
    "products": import_products,
    "parties": import_parties,
}


def build_parser(kind: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"Import {kind} from the first worksheet of an .xlsx file."
    )
    parser.add_argument("sheet", type=Path, help="Path to the .xlsx file")
    parser.add_argument(
        "--log",
        type=Path,
        default=None,
        help="Write unmapped columns, defaults and rejected rows to this .xlsx file.",
    )
    add_db_argument(parser)
    return parser


def _run(kind: str, argv: Sequence[str] | None) -> int:
    parser = build_parser(kind)
    args = parser.parse_args(argv)

    _config, store = open_configured_store(args)
    with store:
        report: ImportReport = _IMPORTERS[kind](args.sheet, store)

    print(f"{args.sheet.name}: {report.summary()}")
    for header in report.unmapped_columns:
        print(f"  ignored column: {header}")
    for issue in report.rejected:
        print(f"  row {issue.row}: [{issue.code}] {issue.message}")

    if args.log is not None:
        logger = ExcelLogger(
            ExcelLoggerConfig(
                columns=("row", "code", "message"),
                filename=str(args.log),
                sheet_title="Import",
            )
        )
        destination = logger.write_rows(report.as_rows())
        print(f"Import log saved to: {destination}")

    if report.rejected and not report.records:
        return 1
    return 0


def products_main(argv: Sequence[str] | None = None) -> int:
    return _run("products", argv)


def parties_main(argv: Sequence[str] | None = None) -> int:
    return _run("parties", argv)
