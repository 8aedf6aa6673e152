"""Invoice records and the in-progress invoice workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Mapping, Protocol

from .calculator import (
    ComputedLine,
    InvoiceTotals,
    aggregate,
    compute_line,
    recompute,
    remove_at,
    replace_at,
    round_off,
)
from .catalog import Product
from .errors import BusinessRuleError, ValidationError
from .parties import Party, is_intra_state
from .settings import CompanyProfile
from .utils import ZERO, to_quantity

LOGGER = logging.getLogger(__name__)


class InvoiceStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class InvoiceItem:
    """A computed line plus the product snapshot printed on the invoice."""

    product_id: int
    name: str
    batch: str
    expiry: str
    hsn: str
    mrp: Decimal
    computed: ComputedLine

    @property
    def quantity(self) -> int:
        return self.computed.quantity


@dataclass(frozen=True)
class Invoice:
    """The persisted invoice record."""

    invoice_no: str
    date: date
    party_id: int
    party_name: str
    party_gstin: str
    party_address: str
    items: tuple[InvoiceItem, ...]
    totals: InvoiceTotals
    round_off: Decimal = ZERO
    status: InvoiceStatus = InvoiceStatus.PAID
    notes: str = ""
    id: int | None = None

    @property
    def payable(self) -> Decimal:
        return self.totals.grand_total + self.round_off

    def stock_decrements(self) -> dict[int, int]:
        decrements: dict[int, int] = {}
        for item in self.items:
            decrements[item.product_id] = decrements.get(item.product_id, 0) + item.quantity
        return decrements


class InvoiceGateway(Protocol):
    """Persistence collaborator used by :class:`InvoiceDraft`."""

    def next_invoice_number(self) -> str:
        """Return ``<prefix>/<year>/<seq>`` for the next invoice."""

    def commit_invoice(self, invoice: Invoice, stock_decrements: Mapping[int, int]) -> Invoice:
        """Record ``invoice`` and apply ``stock_decrements`` all-or-nothing."""

    def lookup_catalog_item(self, product_id: int) -> Product | None:
        """Return the current catalog snapshot for ``product_id``."""


def format_invoice_number(prefix: str, year: int, sequence: int, *, width: int = 3) -> str:
    return f"{prefix}/{year}/{sequence:0{width}d}"


def parse_invoice_sequence(invoice_no: str) -> int | None:
    """Return the numeric sequence at the end of ``invoice_no``."""

    tail = invoice_no.rsplit("/", 1)[-1]
    return int(tail) if tail.isdigit() else None


def parse_invoice_year(invoice_no: str) -> int | None:
    """Return the numbering year of ``invoice_no`` (``GD/2024/001`` gives 2024)."""

    parts = invoice_no.split("/")
    if len(parts) < 3 or not parts[-2].isdigit():
        return None
    return int(parts[-2])


@dataclass
class _Selection:
    """Stock known for each product when it was added to the draft."""

    stock: dict[int, int] = field(default_factory=dict)


class InvoiceDraft:
    """An invoice being edited in the form.

    Lines are held in an immutable tuple; every edit rebuilds the affected
    :class:`ComputedLine` and swaps it in at the same index.
    """

    def __init__(
        self,
        gateway: InvoiceGateway,
        profile: CompanyProfile,
        *,
        invoice_no: str | None = None,
        round_to_rupee: bool = False,
    ) -> None:
        self._gateway = gateway
        self._profile = profile
        self.invoice_no = invoice_no or gateway.next_invoice_number()
        self.round_to_rupee = round_to_rupee
        self.notes = ""
        self.party: Party | None = None
        self.intra_jurisdiction = True
        self._items: tuple[InvoiceItem, ...] = ()
        self._selection = _Selection()
        self._committing = False
        self.saved: Invoice | None = None

    @property
    def items(self) -> tuple[InvoiceItem, ...]:
        return self._items

    @property
    def lines(self) -> tuple[ComputedLine, ...]:
        return tuple(item.computed for item in self._items)

    @property
    def totals(self) -> InvoiceTotals:
        return aggregate(self.lines)

    def select_party(self, party: Party, *, intra_jurisdiction: bool | None = None) -> None:
        """Attach ``party``; lines are recomputed if the tax model changes."""

        if intra_jurisdiction is None:
            intra_jurisdiction = is_intra_state(self._profile.gstin, party.gstin)
        self.party = party
        if intra_jurisdiction != self.intra_jurisdiction:
            self.intra_jurisdiction = intra_jurisdiction
            self._items = tuple(
                replace(item, computed=recompute(item.computed, intra_jurisdiction=intra_jurisdiction))
                for item in self._items
            )

    def clear_party(self) -> None:
        self.party = None

    def add_item(self, product: Product) -> InvoiceItem:
        if product.id is None:
            raise ValidationError("Product has not been saved yet.", code="UNKNOWN_PRODUCT")
        if any(item.product_id == product.id for item in self._items):
            raise BusinessRuleError(
                f"{product.name} is already on this invoice.",
                code="DUPLICATE_ITEM",
                details={"product_id": str(product.id)},
            )
        if product.stock < 1:
            raise ValidationError(
                f"{product.name} is out of stock.",
                code="INSUFFICIENT_STOCK",
                details={"product_id": str(product.id)},
            )

        computed = compute_line(product.to_catalog_line(), intra_jurisdiction=self.intra_jurisdiction)
        item = InvoiceItem(
            product_id=product.id,
            name=product.name,
            batch=product.batch,
            expiry=product.expiry,
            hsn=product.hsn,
            mrp=product.mrp,
            computed=computed,
        )
        self._selection.stock[product.id] = product.stock
        self._items = self._items + (item,)
        return item

    def update_quantity(self, index: int, quantity: object) -> InvoiceItem:
        item = self._items[index]
        qty = to_quantity(quantity)
        available = self._selection.stock.get(item.product_id)
        if available is not None and qty > available:
            raise ValidationError(
                f"Only {available} units of {item.name} are in stock.",
                code="INSUFFICIENT_STOCK",
                details={"product_id": str(item.product_id), "available": str(available)},
            )
        return self._replace(index, recompute(item.computed, quantity=qty))

    def update_discount(self, index: int, discount_percent: object) -> InvoiceItem:
        item = self._items[index]
        return self._replace(index, recompute(item.computed, discount_percent=discount_percent))

    def remove_item(self, index: int) -> None:
        removed = self._items[index]
        self._items = remove_at(self._items, index)
        if not any(item.product_id == removed.product_id for item in self._items):
            self._selection.stock.pop(removed.product_id, None)

    def build_invoice(self, invoice_date: date | None = None) -> Invoice:
        """Freeze the draft into an :class:`Invoice` record."""

        if self.party is None:
            raise BusinessRuleError("Select a party before saving.", code="MISSING_PARTY")
        if not self._items:
            raise BusinessRuleError("Add at least one item before saving.", code="EMPTY_INVOICE")
        if self.party.id is None:
            raise BusinessRuleError("Party has not been saved yet.", code="MISSING_PARTY")

        invoice_date = invoice_date or date.today()
        number_year = parse_invoice_year(self.invoice_no)
        if number_year is not None and invoice_date.year != number_year:
            raise BusinessRuleError(
                f"Invoice {self.invoice_no} belongs to {number_year}; "
                f"it cannot be dated {invoice_date.isoformat()}.",
                code="DATE_OUTSIDE_NUMBER_YEAR",
                details={"invoice_no": self.invoice_no, "date": invoice_date.isoformat()},
            )

        totals = self.totals
        return Invoice(
            invoice_no=self.invoice_no,
            date=invoice_date,
            party_id=self.party.id,
            party_name=self.party.name,
            party_gstin=self.party.gstin,
            party_address=self.party.address,
            items=self._items,
            totals=totals,
            round_off=round_off(totals.grand_total) if self.round_to_rupee else ZERO,
            notes=self.notes,
        )

    def save(self, invoice_date: date | None = None) -> Invoice:
        """Commit the invoice and its stock decrements through the gateway.

        Gateway errors propagate unchanged and the draft stays editable.
        """

        if self._committing:
            raise BusinessRuleError("Invoice is already being saved.", code="COMMIT_IN_PROGRESS")
        if self.saved is not None:
            raise BusinessRuleError(
                f"Invoice {self.saved.invoice_no} was already saved.", code="ALREADY_SAVED"
            )

        invoice = self.build_invoice(invoice_date)
        self._committing = True
        try:
            stored = self._gateway.commit_invoice(invoice, invoice.stock_decrements())
        finally:
            self._committing = False

        LOGGER.info(
            "Saved invoice %s for %s (%d lines, total %s)",
            stored.invoice_no,
            stored.party_name,
            len(stored.items),
            stored.totals.grand_total,
        )
        self.saved = stored
        return stored

    def _replace(self, index: int, computed: ComputedLine) -> InvoiceItem:
        item = replace(self._items[index], computed=computed)
        self._items = replace_at(self._items, index, item)
        return item


__all__ = [
    "Invoice",
    "InvoiceDraft",
    "InvoiceGateway",
    "InvoiceItem",
    "InvoiceStatus",
    "format_invoice_number",
    "parse_invoice_sequence",
    "parse_invoice_year",
]
