"""Utility helpers shared across gstbill modules."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
AMT2 = Decimal("0.01")
RUPEE = Decimal("1")


def q2(value: Decimal) -> Decimal:
    """Round ``value`` to paise for display and exports."""

    return value.quantize(AMT2, rounding=ROUND_HALF_UP)


def fmt2(value: Decimal) -> str:
    return f"{q2(value):.2f}"


def parse_decimal(value: str | Decimal | None, *, default: Decimal = ZERO) -> Decimal:
    """Convert the provided value to :class:`~decimal.Decimal`.

    Empty strings or invalid values return ``default``. Use
    :func:`to_decimal` where bad input must be rejected instead.
    """

    if value is None:
        return default
    if isinstance(value, Decimal):
        return value

    text = str(value).strip()
    if not text:
        return default

    try:
        return Decimal(text)
    except (InvalidOperation, ValueError):
        return default


def to_decimal(value: object, *, field: str) -> Decimal:
    """Strict conversion used for monetary and percentage inputs.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError(
            f"{field} must be a number, got {value!r}.",
            code="INVALID_NUMBER",
            details={"field": field},
        )
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(
                f"{field} must be a number, got {value!r}.",
                code="INVALID_NUMBER",
                details={"field": field},
            ) from None
    if not result.is_finite():
        raise ValidationError(
            f"{field} must be a finite number.",
            code="INVALID_NUMBER",
            details={"field": field},
        )
    return result


def to_quantity(value: object, *, field: str = "quantity") -> int:
    """Return ``value`` as an ``int`` when it represents a whole number."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = to_decimal(value, field=field)
    if number != number.to_integral_value():
        raise ValidationError(
            f"{field} must be a whole number, got {value!r}.",
            code="INVALID_QUANTITY",
            details={"field": field},
        )
    return int(number)


__all__ = [
    "AMT2",
    "HUNDRED",
    "RUPEE",
    "ZERO",
    "fmt2",
    "parse_decimal",
    "q2",
    "to_decimal",
    "to_quantity",
]
