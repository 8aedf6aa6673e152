"""Sales register aggregation, Excel reports and dashboard figures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook

from .catalog import Product, is_expiring_soon, is_low_stock
from .invoices import Invoice, InvoiceStatus
from .utils import ZERO, q2


@dataclass
class Totals:
    """Aggregate of monetary values for a set of lines or invoices."""

    taxable: Decimal = field(default_factory=lambda: ZERO)
    cgst: Decimal = field(default_factory=lambda: ZERO)
    sgst: Decimal = field(default_factory=lambda: ZERO)
    igst: Decimal = field(default_factory=lambda: ZERO)
    total: Decimal = field(default_factory=lambda: ZERO)

    def add(self, taxable: Decimal, cgst: Decimal, sgst: Decimal, igst: Decimal, total: Decimal) -> None:
        self.taxable += taxable
        self.cgst += cgst
        self.sgst += sgst
        self.igst += igst
        self.total += total

    def as_cells(self) -> list[Decimal]:
        return [q2(self.taxable), q2(self.cgst), q2(self.sgst), q2(self.igst), q2(self.total)]


@dataclass
class SalesRegister:
    """Non-cancelled invoices summarised by GST rate."""

    totals_by_rate: dict[Decimal, Totals]
    overall_totals: Totals
    invoices: list[Invoice]
    cancelled: list[Invoice]


def build_sales_register(invoices: Iterable[Invoice]) -> SalesRegister:
    totals_by_rate: dict[Decimal, Totals] = {}
    overall = Totals()
    active: list[Invoice] = []
    cancelled: list[Invoice] = []

    for invoice in invoices:
        if invoice.status is InvoiceStatus.CANCELLED:
            cancelled.append(invoice)
            continue
        active.append(invoice)
        for item in invoice.items:
            line = item.computed
            rate = line.tax_rate_percent
            if rate not in totals_by_rate:
                totals_by_rate[rate] = Totals()
            totals_by_rate[rate].add(
                line.taxable_value,
                line.tax_split_a,
                line.tax_split_b,
                line.inter_jurisdiction_tax,
                line.line_total,
            )
        overall.add(
            invoice.totals.total_taxable,
            invoice.totals.total_split_a,
            invoice.totals.total_split_b,
            invoice.totals.total_inter_jurisdiction,
            invoice.totals.grand_total,
        )

    return SalesRegister(
        totals_by_rate=totals_by_rate,
        overall_totals=overall,
        invoices=active,
        cancelled=cancelled,
    )


_AMOUNT_HEADERS = ["Taxable", "CGST", "SGST", "IGST", "Total"]


def write_excel_report(register: SalesRegister, destination: Path) -> Path:
    """Write the register summary and the invoice list to ``destination``."""

    destination.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    summary_ws = workbook.active
    summary_ws.title = "Summary"
    summary_ws.append(["GST %", *_AMOUNT_HEADERS])
    for rate in sorted(register.totals_by_rate):
        summary_ws.append([q2(rate), *register.totals_by_rate[rate].as_cells()])
    summary_ws.append([])
    summary_ws.append(["Grand Total", *register.overall_totals.as_cells()])

    invoices_ws = workbook.create_sheet(title="Invoices")
    invoices_ws.append(
        ["Invoice No", "Date", "Party", "GSTIN", *_AMOUNT_HEADERS, "Round Off", "Payable"]
    )
    for invoice in register.invoices:
        totals = invoice.totals
        invoices_ws.append(
            [
                invoice.invoice_no,
                invoice.date.isoformat(),
                invoice.party_name,
                invoice.party_gstin,
                q2(totals.total_taxable),
                q2(totals.total_split_a),
                q2(totals.total_split_b),
                q2(totals.total_inter_jurisdiction),
                q2(totals.grand_total),
                q2(invoice.round_off),
                q2(invoice.payable),
            ]
        )

    if register.cancelled:
        cancelled_ws = workbook.create_sheet(title="Cancelled")
        cancelled_ws.append(["Invoice No", "Date", "Party", "Total"])
        for invoice in register.cancelled:
            cancelled_ws.append(
                [
                    invoice.invoice_no,
                    invoice.date.isoformat(),
                    invoice.party_name,
                    q2(invoice.totals.grand_total),
                ]
            )

    workbook.save(destination)
    return destination


@dataclass(frozen=True)
class DashboardStats:
    total_sales: Decimal
    total_invoices: int
    low_stock_items: int
    expiring_soon_items: int


def dashboard_stats(
    products: Iterable[Product],
    invoices: Iterable[Invoice],
    *,
    today: date,
    low_stock_threshold: int = 10,
    expiry_window_days: int = 90,
) -> DashboardStats:
    """Headline figures: sales exclude cancelled invoices, the count does not."""

    total_sales = ZERO
    total_invoices = 0
    for invoice in invoices:
        total_invoices += 1
        if invoice.status is not InvoiceStatus.CANCELLED:
            total_sales += invoice.payable

    low_stock = expiring = 0
    for product in products:
        if is_low_stock(product, low_stock_threshold):
            low_stock += 1
        if is_expiring_soon(product, today, expiry_window_days):
            expiring += 1

    return DashboardStats(
        total_sales=total_sales,
        total_invoices=total_invoices,
        low_stock_items=low_stock,
        expiring_soon_items=expiring,
    )


__all__ = [
    "DashboardStats",
    "SalesRegister",
    "Totals",
    "build_sales_register",
    "dashboard_stats",
    "write_excel_report",
]
