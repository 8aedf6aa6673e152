"""Per-line GST computation and invoice totals.

Everything here is pure: values are kept at full :class:`~decimal.Decimal`
precision and only rounded by callers that display or export them (see
:func:`gstbill.utils.q2`). Rounding between the steps below would compound
across lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, Overflow
from typing import Iterable, Sequence, TypeVar

from .errors import ValidationError
from .tax_table import require_supported_rate
from .utils import HUNDRED, RUPEE, ZERO, q2, to_decimal, to_quantity


@dataclass(frozen=True)
class CatalogLine:
    """A sellable unit on an invoice, before tax is applied."""

    unit_price: Decimal
    quantity: int
    tax_rate_percent: Decimal
    discount_percent: Decimal = ZERO


@dataclass(frozen=True)
class ComputedLine:
    """A :class:`CatalogLine` together with its derived amounts."""

    unit_price: Decimal
    quantity: int
    discount_percent: Decimal
    tax_rate_percent: Decimal
    intra_jurisdiction: bool
    base_amount: Decimal
    discount_amount: Decimal
    taxable_value: Decimal
    tax_split_a: Decimal
    tax_split_b: Decimal
    inter_jurisdiction_tax: Decimal
    line_total: Decimal

    @property
    def tax_amount(self) -> Decimal:
        return self.tax_split_a + self.tax_split_b + self.inter_jurisdiction_tax

    @property
    def catalog_line(self) -> CatalogLine:
        return CatalogLine(
            unit_price=self.unit_price,
            quantity=self.quantity,
            tax_rate_percent=self.tax_rate_percent,
            discount_percent=self.discount_percent,
        )


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice level sums. Always derived from lines, never stored alone."""

    total_taxable: Decimal = field(default=ZERO)
    total_split_a: Decimal = field(default=ZERO)
    total_split_b: Decimal = field(default=ZERO)
    total_inter_jurisdiction: Decimal = field(default=ZERO)
    grand_total: Decimal = field(default=ZERO)

    @property
    def total_tax(self) -> Decimal:
        return self.total_split_a + self.total_split_b + self.total_inter_jurisdiction

    def rounded(self) -> "InvoiceTotals":
        """Return the totals rounded to paise for display."""

        return InvoiceTotals(
            total_taxable=q2(self.total_taxable),
            total_split_a=q2(self.total_split_a),
            total_split_b=q2(self.total_split_b),
            total_inter_jurisdiction=q2(self.total_inter_jurisdiction),
            grand_total=q2(self.grand_total),
        )


def make_line(
    unit_price: object,
    quantity: object,
    tax_rate_percent: object,
    discount_percent: object = 0,
) -> CatalogLine:
    """Coerce raw form values into a validated :class:`CatalogLine`."""

    line = CatalogLine(
        unit_price=to_decimal(unit_price, field="unit_price"),
        quantity=to_quantity(quantity),
        tax_rate_percent=to_decimal(tax_rate_percent, field="tax_rate_percent"),
        discount_percent=to_decimal(discount_percent, field="discount_percent"),
    )
    validate_line(line)
    return line


def validate_line(line: CatalogLine) -> None:
    """Raise :class:`ValidationError` when ``line`` cannot be computed."""

    for name in ("unit_price", "discount_percent", "tax_rate_percent"):
        value = getattr(line, name)
        # Lines built without make_line are not converted; floats are refused.
        if not isinstance(value, Decimal) or not value.is_finite():
            raise ValidationError(
                f"{name} must be a finite Decimal, got {value!r}.",
                code="INVALID_NUMBER",
                details={"field": name},
            )
    if line.unit_price < 0:
        raise ValidationError(
            f"Unit price cannot be negative (got {line.unit_price}).",
            code="NEGATIVE_PRICE",
            details={"unit_price": str(line.unit_price)},
        )
    if isinstance(line.quantity, bool) or not isinstance(line.quantity, int):
        raise ValidationError(
            f"Quantity must be a whole number (got {line.quantity!r}).",
            code="INVALID_QUANTITY",
            details={"quantity": str(line.quantity)},
        )
    if line.quantity < 1:
        raise ValidationError(
            f"Quantity must be at least 1 (got {line.quantity}).",
            code="INVALID_QUANTITY",
            details={"quantity": str(line.quantity)},
        )
    if not ZERO <= line.discount_percent <= HUNDRED:
        raise ValidationError(
            f"Discount must be between 0 and 100% (got {line.discount_percent}).",
            code="INVALID_DISCOUNT",
            details={"discount_percent": str(line.discount_percent)},
        )
    require_supported_rate(line.tax_rate_percent)


def compute_line(line: CatalogLine, *, intra_jurisdiction: bool) -> ComputedLine:
    """Compute the taxable value and GST components of ``line``.

    ``intra_jurisdiction`` selects the CGST/SGST split (``True``) or a
    single IGST component (``False``).
    """

    validate_line(line)

    try:
        base_amount = line.unit_price * line.quantity
        discount_amount = base_amount * line.discount_percent / HUNDRED
        taxable_value = base_amount - discount_amount
        tax_amount = taxable_value * line.tax_rate_percent / HUNDRED
        line_total = taxable_value + tax_amount
    except Overflow:
        raise ValidationError(
            f"Line amount is too large to compute (unit price {line.unit_price}, quantity {line.quantity}).",
            code="AMOUNT_OUT_OF_RANGE",
            details={"unit_price": str(line.unit_price), "quantity": str(line.quantity)},
        ) from None

    if intra_jurisdiction:
        split_a = split_b = tax_amount / 2
        inter = ZERO
    else:
        split_a = split_b = ZERO
        inter = tax_amount

    return ComputedLine(
        unit_price=line.unit_price,
        quantity=line.quantity,
        discount_percent=line.discount_percent,
        tax_rate_percent=line.tax_rate_percent,
        intra_jurisdiction=bool(intra_jurisdiction),
        base_amount=base_amount,
        discount_amount=discount_amount,
        taxable_value=taxable_value,
        tax_split_a=split_a,
        tax_split_b=split_b,
        inter_jurisdiction_tax=inter,
        line_total=line_total,
    )


def recompute(
    computed: ComputedLine,
    *,
    quantity: object | None = None,
    discount_percent: object | None = None,
    intra_jurisdiction: bool | None = None,
) -> ComputedLine:
    """Return a fresh :class:`ComputedLine` for an edited line."""

    line = computed.catalog_line
    if quantity is not None:
        line = replace(line, quantity=to_quantity(quantity))
    if discount_percent is not None:
        line = replace(
            line, discount_percent=to_decimal(discount_percent, field="discount_percent")
        )
    intra = computed.intra_jurisdiction if intra_jurisdiction is None else intra_jurisdiction
    return compute_line(line, intra_jurisdiction=intra)


def aggregate(lines: Iterable[ComputedLine]) -> InvoiceTotals:
    """Fold computed lines into :class:`InvoiceTotals`.

    An empty iterable yields all-zero totals.
    """

    taxable = split_a = split_b = inter = ZERO
    for line in lines:
        taxable += line.taxable_value
        split_a += line.tax_split_a
        split_b += line.tax_split_b
        inter += line.inter_jurisdiction_tax

    return InvoiceTotals(
        total_taxable=taxable,
        total_split_a=split_a,
        total_split_b=split_b,
        total_inter_jurisdiction=inter,
        grand_total=taxable + split_a + split_b + inter,
    )


T = TypeVar("T")


def replace_at(items: Sequence[T], index: int, value: T) -> tuple[T, ...]:
    """Return a copy of ``items`` with position ``index`` set to ``value``."""

    if not 0 <= index < len(items):
        raise IndexError(f"line index {index} out of range")
    return tuple(items[:index]) + (value,) + tuple(items[index + 1 :])


def remove_at(items: Sequence[T], index: int) -> tuple[T, ...]:
    if not 0 <= index < len(items):
        raise IndexError(f"line index {index} out of range")
    return tuple(items[:index]) + tuple(items[index + 1 :])


def round_off(amount: Decimal) -> Decimal:
    """Adjustment that brings ``amount`` to the nearest whole rupee."""

    return amount.quantize(RUPEE, rounding=ROUND_HALF_UP) - amount


__all__ = [
    "CatalogLine",
    "ComputedLine",
    "InvoiceTotals",
    "aggregate",
    "compute_line",
    "make_line",
    "recompute",
    "remove_at",
    "replace_at",
    "round_off",
    "validate_line",
]
