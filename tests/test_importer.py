"""Tests for importing products and parties from Excel sheets."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from gstbill.errors import ValidationError
from gstbill.importer import (
    PRODUCT_FIELDS,
    build_column_map,
    import_parties,
    import_products,
    normalise_header,
    parse_products,
)
from gstbill.logging import ExcelLogger, ExcelLoggerConfig
from gstbill.storage import SQLiteStore


def _create_excel(path: Path, header: list[object], rows: list[list[object]]) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def test_normalise_header_ignores_case_accents_and_punctuation():
    assert normalise_header("  Batch-No. ") == "batch no"
    assert normalise_header("Désignation") == "designation"
    assert normalise_header(None) == ""


def test_build_column_map_prefers_exact_aliases():
    header = ["Item Name", "Sale Rate (Rs)", "Rate", "Qty", "Remarks"]

    mapping, unmapped = build_column_map(header, PRODUCT_FIELDS)

    assert mapping["name"] == 0
    assert mapping["purchase_rate"] == 2
    assert mapping["sale_rate"] == 1
    assert mapping["stock"] == 3
    assert unmapped == ["Remarks"]


def test_missing_name_column_is_reported():
    with pytest.raises(ValidationError) as exc:
        build_column_map(["Batch", "MRP"], PRODUCT_FIELDS)

    assert exc.value.code == "MISSING_COLUMNS"


def test_parse_products_reports_defaults_and_rejections(tmp_path):
    path = _create_excel(
        tmp_path / "stock.xlsx",
        ["Product Name", "Batch No", "Exp Date", "GST %", "MRP", "Purchase Rate", "Stock", "Rack"],
        [
            ["Paracetamol 500mg", "B123", datetime(2026, 12, 31), 12, 20, 10, 1000, "A1"],
            ["Cetirizine", None, "31/01/2026", "5%", 40, 25, None, "A2"],
            ["Mystery Tonic", "MT1", "2026-01-01", 15, 10, 5, 1, "B1"],
            ["Cough Syrup", "CS1", "soon", 18, 90, 50.5, 3, "C1"],
        ],
    )

    report = parse_products(path)

    assert report.column_map["name"] == "Product Name"
    assert report.unmapped_columns == ["Rack"]
    assert [product.name for product in report.records] == [
        "Paracetamol 500mg",
        "Cetirizine",
        "Cough Syrup",
    ]

    paracetamol, cetirizine, syrup = report.records
    assert paracetamol.expiry == "2026-12-31"
    assert paracetamol.gst_rate == Decimal("12")
    assert paracetamol.sale_rate == Decimal("12.0")

    assert cetirizine.batch == "N/A"
    assert cetirizine.expiry == "2026-01-31"
    assert cetirizine.gst_rate == Decimal("5")
    assert cetirizine.stock == 0

    assert syrup.purchase_rate == Decimal("50.5")
    assert syrup.expiry == "soon"

    assert report.defaulted["batch"] == [3]
    assert report.defaulted["stock"] == [3]
    assert report.defaulted["sale_rate"] == [2, 3, 5]
    assert report.defaulted["hsn"] == [2, 3, 5]

    assert [(issue.row, issue.code) for issue in report.rejected] == [(4, "UNSUPPORTED_TAX_RATE")]
    assert [(issue.row, issue.code) for issue in report.warnings] == [(5, "UNPARSED_EXPIRY")]


def test_import_products_saves_accepted_rows(tmp_path):
    path = _create_excel(
        tmp_path / "stock.xlsx",
        ["Name", "GST", "Sale Price", "Qty"],
        [["Azithromycin", 12, 100, 50], ["Bad Row", 12, "abc", 1]],
    )

    with SQLiteStore() as store:
        report = import_products(path, store)

        assert report.records[0].id is not None
        assert [product.name for product in store.list_products()] == ["Azithromycin"]

    assert [(issue.row, issue.code) for issue in report.rejected] == [(3, "INVALID_NUMBER")]
    assert "1 imported, 1 rejected" in report.summary()


def test_import_parties(tmp_path):
    path = _create_excel(
        tmp_path / "parties.xlsx",
        ["Party Name", "GSTIN/UIN", "Address", "Mobile", "DL No"],
        [
            ["City Medical Store", "27abcde1234f1z5", "Mumbai", "9876543210", "MH-1"],
            ["", "27FGHIJ5678K1Z9", "Pune", "", ""],
        ],
    )

    with SQLiteStore() as store:
        report = import_parties(path, store)
        parties = store.list_parties()

    assert [party.gstin for party in parties] == ["27ABCDE1234F1Z5"]
    assert parties[0].dl_no == "MH-1"
    assert [(issue.row, issue.code) for issue in report.rejected] == [(3, "MISSING_NAME")]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_products(tmp_path / "missing.xlsx")


def test_report_rows_can_be_logged_to_excel(tmp_path):
    path = _create_excel(
        tmp_path / "stock.xlsx",
        ["Name", "GST", "Remarks"],
        [["Paracetamol", 28, "x"], ["Unknown", 7, "y"]],
    )
    report = parse_products(path)

    logger = ExcelLogger(
        ExcelLoggerConfig(
            columns=("row", "code", "message"),
            filename=str(tmp_path / "logs" / "import.xlsx"),
            sheet_title="Import",
        )
    )
    destination = logger.write_rows(report.as_rows())

    workbook = load_workbook(destination)
    sheet = workbook["Import"]
    rows = list(sheet.iter_rows(values_only=True))
    workbook.close()

    assert rows[0] == ("row", "code", "message")
    codes = [row[1] for row in rows[1:]]
    assert codes[0] == "UNMAPPED_COLUMN"
    assert "DEFAULTED" in codes
    assert codes[-1] == "UNSUPPORTED_TAX_RATE"
