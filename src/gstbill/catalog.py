"""Product catalog records and search helpers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from .calculator import CatalogLine, make_line
from .errors import ValidationError
from .tax_table import require_supported_rate
from .utils import ZERO, to_decimal


@dataclass(frozen=True)
class Product:
    """A batch of a product held in stock."""

    name: str
    batch: str
    expiry: str
    hsn: str
    gst_rate: Decimal
    mrp: Decimal
    purchase_rate: Decimal
    sale_rate: Decimal
    stock: int
    manufacturer: str = ""
    id: int | None = None

    @property
    def expiry_date(self) -> date | None:
        """Parsed ``expiry`` (``YYYY-MM-DD``), ``None`` when unknown."""

        try:
            return date.fromisoformat(self.expiry.strip())
        except (AttributeError, ValueError):
            return None

    def to_catalog_line(self, quantity: object = 1, discount_percent: object = 0) -> CatalogLine:
        return make_line(self.sale_rate, quantity, self.gst_rate, discount_percent)


def validate_product(product: Product) -> Product:
    """Return ``product`` with normalised numbers or raise :class:`ValidationError`."""

    name = product.name.strip()
    if not name:
        raise ValidationError("Product name is required.", code="MISSING_NAME")

    prices = {}
    for field_name in ("mrp", "purchase_rate", "sale_rate"):
        value = to_decimal(getattr(product, field_name), field=field_name)
        if value < ZERO:
            raise ValidationError(
                f"{field_name} cannot be negative (got {value}).",
                code="NEGATIVE_PRICE",
                details={"field": field_name, "product": name},
            )
        prices[field_name] = value

    stock = product.stock
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise ValidationError(
            f"Stock must be a non-negative whole number (got {stock!r}).",
            code="INVALID_STOCK",
            details={"product": name},
        )

    return replace(
        product,
        name=name,
        batch=product.batch.strip(),
        expiry=product.expiry.strip(),
        hsn=product.hsn.strip(),
        gst_rate=require_supported_rate(product.gst_rate),
        **prices,
    )


def matches_search(product: Product, term: str) -> bool:
    """Case-insensitive match on product name or batch."""

    needle = term.strip().lower()
    if not needle:
        return True
    return needle in product.name.lower() or needle in product.batch.lower()


def search_products(
    products: Iterable[Product],
    term: str = "",
    *,
    in_stock_only: bool = False,
    limit: int | None = None,
) -> list[Product]:
    """Filter ``products`` the way the inventory and invoice pickers do."""

    results: list[Product] = []
    for product in products:
        if in_stock_only and product.stock <= 0:
            continue
        if not matches_search(product, term):
            continue
        results.append(product)
        if limit is not None and len(results) >= limit:
            break
    return results


def is_expired(product: Product, today: date) -> bool:
    expiry = product.expiry_date
    return expiry is not None and expiry < today


def is_expiring_soon(product: Product, today: date, window_days: int) -> bool:
    """True for unexpired batches that expire within ``window_days``."""

    expiry = product.expiry_date
    if expiry is None or expiry < today:
        return False
    return expiry <= today + timedelta(days=window_days)


def is_low_stock(product: Product, threshold: int) -> bool:
    return product.stock < threshold


__all__ = [
    "Product",
    "is_expired",
    "is_expiring_soon",
    "is_low_stock",
    "matches_search",
    "search_products",
    "validate_product",
]
