from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from gstbill.calculator import aggregate, compute_line, make_line
from gstbill.catalog import Product
from gstbill.invoices import Invoice, InvoiceItem, InvoiceStatus
from gstbill.reporting import build_sales_register, dashboard_stats, write_excel_report


def _item(product_id: int, price, qty, rate, discount=0, *, intra=True) -> InvoiceItem:
    return InvoiceItem(
        product_id=product_id,
        name=f"Product {product_id}",
        batch="B1",
        expiry="2026-12-31",
        hsn="3004",
        mrp=Decimal("0"),
        computed=compute_line(make_line(price, qty, rate, discount), intra_jurisdiction=intra),
    )


def _invoice(invoice_no: str, items, *, status=InvoiceStatus.PAID, round_off="0") -> Invoice:
    items = tuple(items)
    return Invoice(
        invoice_no=invoice_no,
        date=date(2024, 4, 1),
        party_id=1,
        party_name="City Medical Store",
        party_gstin="27ABCDE1234F1Z5",
        party_address="Mumbai",
        items=items,
        totals=aggregate(item.computed for item in items),
        round_off=Decimal(round_off),
        status=status,
    )


@pytest.fixture
def invoices():
    return [
        _invoice("GD/2024/001", [_item(1, 100, 2, 12), _item(2, 50, 3, 5, 10)], round_off="0.25"),
        _invoice("GD/2024/002", [_item(1, 100, 1, 12, intra=False)]),
        _invoice("GD/2024/003", [_item(3, 10, 1, 18)], status=InvoiceStatus.CANCELLED),
    ]


def test_sales_register_groups_by_rate_and_skips_cancelled(invoices):
    register = build_sales_register(invoices)

    assert [invoice.invoice_no for invoice in register.invoices] == ["GD/2024/001", "GD/2024/002"]
    assert [invoice.invoice_no for invoice in register.cancelled] == ["GD/2024/003"]
    assert sorted(register.totals_by_rate) == [Decimal("5"), Decimal("12")]

    twelve = register.totals_by_rate[Decimal("12")]
    assert twelve.taxable == Decimal("300")
    assert twelve.cgst == Decimal("12")
    assert twelve.igst == Decimal("12")
    assert twelve.total == Decimal("336")

    overall = register.overall_totals
    assert overall.taxable == Decimal("435")
    assert overall.cgst == Decimal("15.375")
    assert overall.as_cells() == [
        Decimal("435.00"),
        Decimal("15.38"),
        Decimal("15.38"),
        Decimal("12.00"),
        Decimal("477.75"),
    ]


def test_write_excel_report(tmp_path, invoices):
    destination = write_excel_report(
        build_sales_register(invoices), tmp_path / "reports" / "register.xlsx"
    )

    workbook = load_workbook(destination)
    assert workbook.sheetnames == ["Summary", "Invoices", "Cancelled"]

    summary = list(workbook["Summary"].iter_rows(values_only=True))
    assert summary[0] == ("GST %", "Taxable", "CGST", "SGST", "IGST", "Total")
    assert summary[1][0] == pytest.approx(5)
    assert summary[2][1] == pytest.approx(300)
    assert summary[-1][0] == "Grand Total"
    assert summary[-1][5] == pytest.approx(477.75)

    rows = list(workbook["Invoices"].iter_rows(values_only=True))
    assert rows[0][0] == "Invoice No"
    assert rows[1][0] == "GD/2024/001"
    assert rows[1][-2] == pytest.approx(0.25)
    assert rows[1][-1] == pytest.approx(366)
    assert len(rows) == 3

    cancelled = list(workbook["Cancelled"].iter_rows(values_only=True))
    assert cancelled[1][0] == "GD/2024/003"
    workbook.close()


def test_report_without_cancellations_has_two_sheets(tmp_path, invoices):
    destination = write_excel_report(build_sales_register(invoices[:2]), tmp_path / "r.xlsx")

    workbook = load_workbook(destination)
    assert workbook.sheetnames == ["Summary", "Invoices"]
    workbook.close()


def test_dashboard_stats(invoices):
    product = Product(
        "Paracetamol", "B1", "2024-05-01", "3004", Decimal("12"), Decimal("20"),
        Decimal("10"), Decimal("15"), 100, id=1,
    )
    products = [
        product,
        replace(product, id=2, stock=4, expiry="2025-01-01"),
        replace(product, id=3, stock=9, expiry="2024-03-01"),
        replace(product, id=4, expiry=""),
    ]

    stats = dashboard_stats(products, invoices, today=date(2024, 4, 1))

    assert stats.total_invoices == 3
    assert stats.total_sales == Decimal("366.00") + Decimal("112")
    assert stats.low_stock_items == 2
    assert stats.expiring_soon_items == 1
