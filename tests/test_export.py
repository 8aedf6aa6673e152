from __future__ import annotations

from datetime import date
from decimal import Decimal

from gstbill.calculator import aggregate, compute_line, make_line
from gstbill.export import (
    NS_SALES,
    load_sales_document,
    read_document_totals,
    write_sales_xml,
)
from gstbill.invoices import Invoice, InvoiceItem, InvoiceStatus
from gstbill.settings import DEFAULT_PROFILE

NS = {"n": NS_SALES}


def _invoice(invoice_no: str, *, intra: bool, status=InvoiceStatus.PAID) -> Invoice:
    items = (
        InvoiceItem(1, "Paracetamol 500mg", "B123", "2026-12-31", "3004", Decimal("20"),
                    compute_line(make_line(100, 2, 12), intra_jurisdiction=intra)),
        InvoiceItem(2, "Vitamin C", "VC99", "2026-05-15", "3004", Decimal("60"),
                    compute_line(make_line(50, 3, 5, 10), intra_jurisdiction=intra)),
    )
    return Invoice(
        invoice_no=invoice_no,
        date=date(2024, 4, 2),
        party_id=1,
        party_name="City Medical Store",
        party_gstin="27ABCDE1234F1Z5",
        party_address="Mumbai",
        items=items,
        totals=aggregate(item.computed for item in items),
        round_off=Decimal("0.25"),
        status=status,
    )


def test_write_sales_xml_round_trips_totals(tmp_path):
    destination = write_sales_xml(
        [_invoice("GD/2024/001", intra=True), _invoice("GD/2024/002", intra=False)],
        DEFAULT_PROFILE,
        tmp_path / "out" / "sales.xml",
        generated_on=date(2024, 4, 30),
    )

    _tree, root, namespace = load_sales_document(destination)

    assert namespace == NS_SALES
    assert root.findtext("n:Header/n:GeneratedOn", namespaces=NS) == "2024-04-30"
    assert root.findtext("n:Header/n:GSTIN", namespaces=NS) == DEFAULT_PROFILE.gstin
    assert root.findtext("n:Invoices/n:NumberOfEntries", namespaces=NS) == "2"

    totals = read_document_totals(root, namespace)
    assert [entry.invoice_no for entry in totals] == ["GD/2024/001", "GD/2024/002"]

    intra, inter = totals
    assert intra.taxable == Decimal("335.00")
    assert intra.cgst == Decimal("15.38")
    assert intra.sgst == Decimal("15.38")
    assert intra.igst == Decimal("0.00")
    assert intra.grand_total == Decimal("365.75")
    assert inter.igst == Decimal("30.75")
    assert inter.cgst == Decimal("0.00")


def test_invoice_lines_are_exported_in_order(tmp_path):
    destination = write_sales_xml(
        [_invoice("GD/2024/001", intra=True, status=InvoiceStatus.CANCELLED)],
        DEFAULT_PROFILE,
        tmp_path / "sales.xml",
    )

    _tree, root, _namespace = load_sales_document(destination)
    invoice = root.find("n:Invoices/n:Invoice", namespaces=NS)

    assert invoice.findtext("n:Status", namespaces=NS) == "CANCELLED"
    lines = invoice.findall("n:Line", namespaces=NS)
    assert [line.findtext("n:Description", namespaces=NS) for line in lines] == [
        "Paracetamol 500mg",
        "Vitamin C",
    ]
    second = lines[1]
    assert second.findtext("n:TaxPercentage", namespaces=NS) == "5"
    assert second.findtext("n:DiscountPercent", namespaces=NS) == "10.00"
    assert second.findtext("n:CGST", namespaces=NS) == "3.38"
    assert invoice.findtext("n:DocumentTotals/n:Payable", namespaces=NS) == "366.00"
