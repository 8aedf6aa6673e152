"""Command line entry points for gstbill."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from .commands import export_xml, import_sheet, invoice, manage, quote, report, stats
from .config import load_config
from .errors import GstBillError
from .logging import configure_logging

CommandCallable = Callable[[list[str] | None], int | None]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSpec:
    """Metadata describing a CLI command exposed by :mod:`gstbill.cli`."""

    name: str
    summary: str
    handler: CommandCallable
    module: str

    def run(self, argv: list[str] | None) -> int:
        """Execute the command and normalise the resulting exit code."""

        try:
            result = self.handler(argv)
        except SystemExit as exc:  # argparse exits on --help and bad arguments
            code = exc.code
            if code is None:
                return 0
            if isinstance(code, int):
                return code
            print(str(code), file=sys.stderr)
            return 1
        except GstBillError as exc:
            LOGGER.warning("%s failed: [%s] %s", self.name, exc.code, exc.message)
            print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
            return 1
        if result is None:
            return 0
        return int(result)


_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec(
        name="init",
        summary="Create the database and seed sample data.",
        handler=manage.init_main,
        module="gstbill.commands.manage",
    ),
    CommandSpec(
        name="quote",
        summary="Show the GST breakdown of a single line.",
        handler=quote.main,
        module="gstbill.commands.quote",
    ),
    CommandSpec(
        name="invoice",
        summary="Create and save an invoice, decrementing stock.",
        handler=invoice.main,
        module="gstbill.commands.invoice",
    ),
    CommandSpec(
        name="cancel",
        summary="Cancel an invoice and restore its stock.",
        handler=manage.cancel_main,
        module="gstbill.commands.manage",
    ),
    CommandSpec(
        name="import-products",
        summary="Import products from an Excel sheet.",
        handler=import_sheet.products_main,
        module="gstbill.commands.import_sheet",
    ),
    CommandSpec(
        name="import-parties",
        summary="Import parties from an Excel sheet.",
        handler=import_sheet.parties_main,
        module="gstbill.commands.import_sheet",
    ),
    CommandSpec(
        name="report",
        summary="Write the sales register to Excel.",
        handler=report.main,
        module="gstbill.commands.report",
    ),
    CommandSpec(
        name="export-xml",
        summary="Export invoices as an XML sales register.",
        handler=export_xml.main,
        module="gstbill.commands.export_xml",
    ),
    CommandSpec(
        name="stats",
        summary="Show dashboard figures.",
        handler=stats.main,
        module="gstbill.commands.stats",
    ),
)

_COMMAND_INDEX: Mapping[str, CommandSpec] = {spec.name: spec for spec in _COMMANDS}


def available_commands() -> Iterable[CommandSpec]:
    """Return the commands registered in the CLI."""

    return _COMMANDS


def build_parser() -> argparse.ArgumentParser:
    """Return the top-level parser used for usage, help and unknown commands."""

    parser = argparse.ArgumentParser(prog="gstbill", description="GST billing and inventory tools")
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    for spec in _COMMANDS:
        subparsers.add_parser(
            spec.name,
            help=spec.summary,
            description=spec.summary,
            add_help=False,
        )

    return parser


def run(command: str, argv: Sequence[str] | None = None) -> int:
    """Execute *command* forwarding ``argv`` to the underlying handler."""

    spec = _COMMAND_INDEX.get(command)
    if spec is None:
        raise ValueError(f"Unknown command: {command}")
    forwarded = list(argv or [])
    return spec.run(forwarded)


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the command line interface.

    The first argument selects the command; everything after it is passed
    untouched to that command's own parser.
    """

    args = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    if not args or args[0].startswith("-"):
        parser.parse_args(args)
    command, forwarded = args[0], args[1:]
    if command not in _COMMAND_INDEX:
        parser.error(f"unknown command {command!r}")

    try:
        config = load_config()
    except ValueError as exc:
        parser.error(str(exc))
    configure_logging(config.log_dir)

    return run(command, forwarded)


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
