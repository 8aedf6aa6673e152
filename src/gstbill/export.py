"""XML export of invoices for exchange with accounting software."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from lxml import etree

from .invoices import Invoice
from .settings import CompanyProfile
from .utils import fmt2, parse_decimal

NS_SALES = "urn:gstbill:sales-register:1.0"


def _ns_tag(name: str, ns_uri: str = NS_SALES) -> str:
    return f"{{{ns_uri}}}{name}"


def _add(parent: etree._Element, name: str, text: object | None = None) -> etree._Element:
    element = etree.SubElement(parent, _ns_tag(name))
    if text is not None:
        element.text = str(text)
    return element


def _fmt_rate(rate: Decimal) -> str:
    """``12`` for whole rates, two decimals otherwise."""

    if rate == rate.to_integral_value():
        return str(int(rate))
    return fmt2(rate)


def build_sales_document(
    invoices: Iterable[Invoice], profile: CompanyProfile, *, generated_on: date | None = None
) -> etree._Element:
    """Return the ``SalesRegister`` root element for ``invoices``.

    Amounts are written with two decimals; line values are rounded
    individually so document totals may differ from the sum of rounded
    lines by a paisa.
    """

    root = etree.Element(_ns_tag("SalesRegister"), nsmap={None: NS_SALES})

    header = _add(root, "Header")
    _add(header, "CompanyName", profile.company_name)
    _add(header, "GSTIN", profile.gstin)
    _add(header, "GeneratedOn", (generated_on or date.today()).isoformat())

    invoices = list(invoices)
    container = _add(root, "Invoices")
    _add(container, "NumberOfEntries", len(invoices))

    for invoice in invoices:
        node = _add(container, "Invoice")
        _add(node, "InvoiceNo", invoice.invoice_no)
        _add(node, "InvoiceDate", invoice.date.isoformat())
        _add(node, "Status", invoice.status.value)

        party = _add(node, "Party")
        _add(party, "PartyID", invoice.party_id)
        _add(party, "Name", invoice.party_name)
        _add(party, "GSTIN", invoice.party_gstin)
        _add(party, "Address", invoice.party_address)

        for number, item in enumerate(invoice.items, start=1):
            line = item.computed
            line_node = _add(node, "Line")
            _add(line_node, "LineNumber", number)
            _add(line_node, "ProductID", item.product_id)
            _add(line_node, "Description", item.name)
            _add(line_node, "Batch", item.batch)
            _add(line_node, "Expiry", item.expiry)
            _add(line_node, "HSN", item.hsn)
            _add(line_node, "Quantity", line.quantity)
            _add(line_node, "UnitPrice", fmt2(line.unit_price))
            _add(line_node, "DiscountPercent", fmt2(line.discount_percent))
            _add(line_node, "TaxPercentage", _fmt_rate(line.tax_rate_percent))
            _add(line_node, "TaxableValue", fmt2(line.taxable_value))
            _add(line_node, "CGST", fmt2(line.tax_split_a))
            _add(line_node, "SGST", fmt2(line.tax_split_b))
            _add(line_node, "IGST", fmt2(line.inter_jurisdiction_tax))
            _add(line_node, "LineTotal", fmt2(line.line_total))

        totals = _add(node, "DocumentTotals")
        _add(totals, "TaxableTotal", fmt2(invoice.totals.total_taxable))
        _add(totals, "CGST", fmt2(invoice.totals.total_split_a))
        _add(totals, "SGST", fmt2(invoice.totals.total_split_b))
        _add(totals, "IGST", fmt2(invoice.totals.total_inter_jurisdiction))
        _add(totals, "GrandTotal", fmt2(invoice.totals.grand_total))
        _add(totals, "RoundOff", fmt2(invoice.round_off))
        _add(totals, "Payable", fmt2(invoice.payable))

    return root


def write_sales_xml(
    invoices: Iterable[Invoice],
    profile: CompanyProfile,
    destination: Path,
    *,
    generated_on: date | None = None,
) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    root = build_sales_document(invoices, profile, generated_on=generated_on)
    etree.ElementTree(root).write(
        str(destination), xml_declaration=True, encoding="UTF-8", pretty_print=True
    )
    return destination


def detect_namespace(root: etree._Element) -> str:
    tag = getattr(root, "tag", "")
    if isinstance(tag, str) and tag.startswith("{") and "}" in tag:
        return tag.split("}", 1)[0][1:]
    return ""


def load_sales_document(path: Path) -> tuple[etree._ElementTree, etree._Element, str]:
    """Load *path* and return the parsed tree, root element and namespace."""

    tree = etree.parse(str(path))
    root = tree.getroot()
    return tree, root, detect_namespace(root)


@dataclass(frozen=True)
class ExportedTotals:
    invoice_no: str
    taxable: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    grand_total: Decimal


def read_document_totals(root: etree._Element, namespace: str) -> list[ExportedTotals]:
    """Return the ``DocumentTotals`` of every exported invoice."""

    ns = {"n": namespace} if namespace else None
    prefix = "n:" if namespace else ""
    results: list[ExportedTotals] = []
    for invoice in root.findall(f".//{prefix}Invoices/{prefix}Invoice", namespaces=ns):

        def text(path: str) -> str:
            return invoice.findtext(path.replace("n:", prefix), default="", namespaces=ns).strip()

        results.append(
            ExportedTotals(
                invoice_no=text("n:InvoiceNo"),
                taxable=parse_decimal(text("n:DocumentTotals/n:TaxableTotal")),
                cgst=parse_decimal(text("n:DocumentTotals/n:CGST")),
                sgst=parse_decimal(text("n:DocumentTotals/n:SGST")),
                igst=parse_decimal(text("n:DocumentTotals/n:IGST")),
                grand_total=parse_decimal(text("n:DocumentTotals/n:GrandTotal")),
            )
        )
    return results


__all__ = [
    "ExportedTotals",
    "NS_SALES",
    "build_sales_document",
    "detect_namespace",
    "load_sales_document",
    "read_document_totals",
    "write_sales_xml",
]
