"""Best-effort import of products and parties from Excel sheets.

Column headers are matched against known aliases after normalisation
(case, accents and punctuation are ignored). Whatever cannot be mapped is
reported instead of silently guessed: every unmapped column, every field
filled with a default and every rejected row ends up in the
:class:`ImportReport`.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, Sequence

from .catalog import Product, validate_product
from .errors import ValidationError
from .parties import Party, validate_party
from .tax_table import DEFAULT_RATE, require_supported_rate
from .utils import ZERO, to_decimal, to_quantity

logger = logging.getLogger(__name__)

SALE_MARKUP = Decimal("1.2")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%d.%m.%Y")


@dataclass(frozen=True)
class FieldSpec:
    """A target field and the header spellings that map to it."""

    name: str
    aliases: tuple[str, ...]
    required: bool = False


PRODUCT_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("name", ("name", "product name", "product", "item name", "item", "description"), True),
    FieldSpec("batch", ("batch", "batch no", "batch number", "lot")),
    FieldSpec("expiry", ("expiry", "expiry date", "exp", "exp date", "expires")),
    FieldSpec("hsn", ("hsn", "hsn code", "hsn sac")),
    FieldSpec("gst_rate", ("gst", "gst rate", "gst percent", "tax", "tax rate", "igst")),
    FieldSpec("mrp", ("mrp", "m r p", "max retail price")),
    FieldSpec("sale_rate", ("sale rate", "sale price", "selling price", "selling rate", "ptr")),
    FieldSpec("purchase_rate", ("purchase rate", "purchase price", "cost", "rate", "pts")),
    FieldSpec("stock", ("stock", "qty", "quantity", "closing stock", "balance")),
    FieldSpec("manufacturer", ("manufacturer", "mfr", "mfg", "company", "brand")),
)

PARTY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("name", ("name", "party name", "party", "customer", "customer name", "firm"), True),
    FieldSpec("gstin", ("gstin", "gst no", "gst number", "gstin uin")),
    FieldSpec("address", ("address", "billing address", "addr")),
    FieldSpec("phone", ("phone", "mobile", "phone no", "contact", "telephone")),
    FieldSpec("email", ("email", "e mail", "mail")),
    FieldSpec("dl_no", ("dl no", "dl", "drug licence", "drug license", "dl number")),
)


@dataclass
class ImportIssue:
    """Something noteworthy about one spreadsheet row (1-based, header is row 1)."""

    row: int
    code: str
    message: str

    def as_cells(self) -> list[object]:
        return [self.row, self.code, self.message]


@dataclass
class ImportReport:
    """Outcome of mapping a sheet onto records."""

    source: Path
    column_map: dict[str, str] = field(default_factory=dict)
    unmapped_columns: list[str] = field(default_factory=list)
    defaulted: dict[str, list[int]] = field(default_factory=dict)
    rejected: list[ImportIssue] = field(default_factory=list)
    warnings: list[ImportIssue] = field(default_factory=list)
    records: list = field(default_factory=list)

    def note_default(self, field_name: str, row: int) -> None:
        self.defaulted.setdefault(field_name, []).append(row)

    def as_rows(self) -> Iterator[ImportIssue]:
        """Yield every reportable event, suitable for :class:`ExcelLogger`."""

        for header in self.unmapped_columns:
            yield ImportIssue(1, "UNMAPPED_COLUMN", f"Column '{header}' was ignored.")
        for field_name, rows in self.defaulted.items():
            for row in rows:
                yield ImportIssue(row, "DEFAULTED", f"'{field_name}' missing; default used.")
        yield from self.warnings
        yield from self.rejected

    def summary(self) -> str:
        return (
            f"{len(self.records)} imported, {len(self.rejected)} rejected, "
            f"{sum(len(rows) for rows in self.defaulted.values())} defaulted values, "
            f"{len(self.unmapped_columns)} unmapped columns"
        )


def normalise_header(value: object) -> str:
    """Lower-case ``value`` without accents and with punctuation collapsed."""

    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value).strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(" ", text).strip()


def build_column_map(
    header: Sequence[object], specs: Sequence[FieldSpec]
) -> tuple[dict[str, int], list[str]]:
    """Map field names to column indexes and list the headers left over.

    Exact alias matches are taken first; remaining columns are then matched
    when an alias appears as a whole-word run inside the header
    (``"Sale Rate (Rs)"`` → ``sale_rate``). Earlier fields win ties.
    """

    normalised = [normalise_header(value) for value in header]
    mapping: dict[str, int] = {}
    taken: set[int] = set()

    for spec in specs:
        aliases = {normalise_header(alias) for alias in spec.aliases}
        for index, key in enumerate(normalised):
            if key and index not in taken and key in aliases:
                mapping[spec.name] = index
                taken.add(index)
                break

    for spec in specs:
        if spec.name in mapping:
            continue
        for alias in spec.aliases:
            needle = f" {normalise_header(alias)} "
            index = next(
                (
                    i
                    for i, key in enumerate(normalised)
                    if key and i not in taken and needle in f" {key} "
                ),
                None,
            )
            if index is not None:
                mapping[spec.name] = index
                taken.add(index)
                break

    missing = [spec.name for spec in specs if spec.required and spec.name not in mapping]
    if missing:
        raise ValidationError(
            "The sheet is missing required columns: " + ", ".join(missing) + ".",
            code="MISSING_COLUMNS",
            details={"missing": ", ".join(missing)},
        )

    unmapped = [
        str(value).strip()
        for index, value in enumerate(header)
        if index not in taken and normalise_header(value)
    ]
    return mapping, unmapped


def read_sheet(path: Path) -> tuple[tuple[object, ...], list[tuple[object, ...]]]:
    """Return the header and data rows of the first worksheet."""

    from openpyxl import load_workbook

    if not path.exists():
        raise FileNotFoundError(f"Excel file not found: {path}")

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        rows = list(workbook.active.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows or not any(cell is not None for cell in rows[0]):
        raise ValidationError(f"{path.name} contains no header row.", code="EMPTY_SHEET")
    return rows[0], rows[1:]


def parse_products(path: Path) -> ImportReport:
    header, rows = read_sheet(path)
    mapping, unmapped = build_column_map(header, PRODUCT_FIELDS)
    report = ImportReport(source=path, unmapped_columns=unmapped)
    report.column_map = {name: str(header[index]).strip() for name, index in mapping.items()}
    _parse_rows(rows, mapping, report, _product_from_row)
    return report


def parse_parties(path: Path) -> ImportReport:
    header, rows = read_sheet(path)
    mapping, unmapped = build_column_map(header, PARTY_FIELDS)
    report = ImportReport(source=path, unmapped_columns=unmapped)
    report.column_map = {name: str(header[index]).strip() for name, index in mapping.items()}
    _parse_rows(rows, mapping, report, _party_from_row)
    return report


def import_products(path: Path, store) -> ImportReport:
    """Parse ``path`` and add the accepted products to ``store`` in one go."""

    report = parse_products(path)
    if report.records:
        report.records = store.bulk_add_products(report.records)
    logger.info("Product import from %s: %s", path, report.summary())
    return report


def import_parties(path: Path, store) -> ImportReport:
    report = parse_parties(path)
    if report.records:
        report.records = store.bulk_add_parties(report.records)
    logger.info("Party import from %s: %s", path, report.summary())
    return report


_RowParser = Callable[["_Row"], object]


@dataclass
class _Row:
    """One data row; defaults and warnings are kept until the row is accepted."""

    number: int
    cells: tuple[object, ...]
    mapping: dict[str, int]
    defaulted: list[str] = field(default_factory=list)
    warnings: list[ImportIssue] = field(default_factory=list)

    def text(self, name: str) -> str:
        index = self.mapping.get(name)
        if index is None or index >= len(self.cells):
            return ""
        return normalise_excel_value(self.cells[index])

    def raw(self, name: str) -> object:
        index = self.mapping.get(name)
        if index is None or index >= len(self.cells):
            return None
        return self.cells[index]

    def note_default(self, field_name: str) -> None:
        self.defaulted.append(field_name)

    def warn(self, code: str, message: str) -> None:
        self.warnings.append(ImportIssue(self.number, code, message))


def _parse_rows(
    rows: Sequence[tuple[object, ...]],
    mapping: dict[str, int],
    report: ImportReport,
    parser: _RowParser,
) -> None:
    for number, cells in enumerate(rows, start=2):
        if cells is None or all(normalise_excel_value(cell) == "" for cell in cells):
            continue
        row = _Row(number, tuple(cells), mapping)
        try:
            record = parser(row)
        except ValidationError as exc:
            report.rejected.append(ImportIssue(number, exc.code, exc.message))
            continue
        for field_name in row.defaulted:
            report.note_default(field_name, number)
        report.warnings.extend(row.warnings)
        report.records.append(record)


def _product_from_row(row: _Row) -> Product:
    name = row.text("name")
    if not name:
        raise ValidationError("Product name is empty.", code="MISSING_NAME")

    def text_or_default(field_name: str, default: str) -> str:
        value = row.text(field_name)
        if value:
            return value
        row.note_default(field_name)
        return default

    def number_or_default(field_name: str, default: Decimal | None) -> Decimal | None:
        value = row.text(field_name)
        if value:
            return to_decimal(value, field=field_name)
        if default is not None:
            row.note_default(field_name)
        return default

    batch = text_or_default("batch", "N/A")
    hsn = text_or_default("hsn", "3004")
    expiry = _parse_expiry(row)

    gst_text = row.text("gst_rate")
    if gst_text:
        gst_rate = require_supported_rate(_strip_percent(gst_text))
    else:
        row.note_default("gst_rate")
        gst_rate = DEFAULT_RATE

    mrp = number_or_default("mrp", ZERO)
    purchase_rate = number_or_default("purchase_rate", ZERO)
    sale_rate = number_or_default("sale_rate", None)
    if sale_rate is None:
        row.note_default("sale_rate")
        sale_rate = purchase_rate * SALE_MARKUP

    stock_text = row.text("stock")
    if stock_text:
        stock = to_quantity(stock_text, field="stock")
    else:
        row.note_default("stock")
        stock = 0

    return validate_product(
        Product(
            name=name,
            batch=batch,
            expiry=expiry,
            hsn=hsn,
            gst_rate=gst_rate,
            mrp=mrp,
            purchase_rate=purchase_rate,
            sale_rate=sale_rate,
            stock=stock,
            manufacturer=row.text("manufacturer"),
        )
    )


def _party_from_row(row: _Row) -> Party:
    name = row.text("name")
    if not name:
        raise ValidationError("Party name is empty.", code="MISSING_NAME")
    return validate_party(
        Party(
            name=name,
            gstin=row.text("gstin"),
            address=row.text("address"),
            phone=row.text("phone"),
            email=row.text("email"),
            dl_no=row.text("dl_no"),
        )
    )


def _parse_expiry(row: _Row) -> str:
    raw = row.raw("expiry")
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()

    text = row.text("expiry")
    if not text:
        row.note_default("expiry")
        return ""
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    row.warn("UNPARSED_EXPIRY", f"Expiry '{text}' kept as text.")
    return text


def _strip_percent(text: str) -> str:
    return text.replace("%", "").strip()


def normalise_excel_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value).strip()


__all__ = [
    "FieldSpec",
    "ImportIssue",
    "ImportReport",
    "PARTY_FIELDS",
    "PRODUCT_FIELDS",
    "build_column_map",
    "import_parties",
    "import_products",
    "normalise_excel_value",
    "normalise_header",
    "parse_parties",
    "parse_products",
    "read_sheet",
]
