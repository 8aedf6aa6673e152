"""GST rate table and helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .errors import ValidationError
from .utils import to_decimal


@dataclass(frozen=True)
class TaxEntry:
    """Representation of a GST slab."""

    code: str
    description: str
    rate: Decimal

    @property
    def half_rate(self) -> Decimal:
        """Rate of each component when the tax is split CGST/SGST."""

        return self.rate / 2


_TAX_TABLE: tuple[TaxEntry, ...] = (
    TaxEntry("GST0", "Nil rated", Decimal("0")),
    TaxEntry("GST5", "GST 5%", Decimal("5")),
    TaxEntry("GST12", "GST 12%", Decimal("12")),
    TaxEntry("GST18", "GST 18%", Decimal("18")),
    TaxEntry("GST28", "GST 28%", Decimal("28")),
)

SUPPORTED_RATES: frozenset[Decimal] = frozenset(entry.rate for entry in _TAX_TABLE)
DEFAULT_RATE = Decimal("12")


def load_tax_table() -> Iterable[TaxEntry]:
    """Return the GST slabs in ascending order."""

    return _TAX_TABLE


def require_supported_rate(value: object) -> Decimal:
    """Return ``value`` as a supported rate or raise :class:`ValidationError`.

    Unsupported rates are never mapped to a default.
    """

    rate = to_decimal(value, field="tax_rate_percent")
    if rate not in SUPPORTED_RATES:
        allowed = ", ".join(str(entry.rate) for entry in _TAX_TABLE)
        raise ValidationError(
            f"Unsupported GST rate {value}%; expected one of {allowed}.",
            code="UNSUPPORTED_TAX_RATE",
            details={"rate": str(value)},
        )
    # Normalise "12.00" and "12" to the same key.
    return next(entry.rate for entry in _TAX_TABLE if entry.rate == rate)


def entry_for_rate(rate: Decimal) -> TaxEntry:
    supported = require_supported_rate(rate)
    return next(entry for entry in _TAX_TABLE if entry.rate == supported)


__all__ = [
    "DEFAULT_RATE",
    "SUPPORTED_RATES",
    "TaxEntry",
    "entry_for_rate",
    "load_tax_table",
    "require_supported_rate",
]
