from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from gstbill.catalog import (
    Product,
    is_expired,
    is_expiring_soon,
    search_products,
    validate_product,
)
from gstbill.errors import ValidationError
from gstbill.parties import Party, gstin_state_code, is_intra_state, search_parties
from gstbill.tax_table import entry_for_rate, load_tax_table, require_supported_rate

PRODUCT = Product(
    "Paracetamol 500mg", "B123", "2026-12-31", "3004", Decimal("12"), Decimal("20"),
    Decimal("10"), Decimal("15"), 1000, "Cipla", id=1,
)


def test_search_matches_name_or_batch_case_insensitively():
    products = [
        PRODUCT,
        replace(PRODUCT, name="Azithromycin", batch="AZ09", id=2),
        replace(PRODUCT, name="Vitamin C", batch="VC99", stock=0, id=3),
    ]

    assert [p.id for p in search_products(products, "para")] == [1]
    assert [p.id for p in search_products(products, "az0")] == [2]
    assert [p.id for p in search_products(products, "")] == [1, 2, 3]
    assert [p.id for p in search_products(products, in_stock_only=True)] == [1, 2]
    assert [p.id for p in search_products(products, limit=1)] == [1]


def test_expiry_helpers():
    today = date(2026, 10, 1)

    assert not is_expired(PRODUCT, today)
    assert is_expiring_soon(PRODUCT, today, 91)
    assert not is_expiring_soon(PRODUCT, today, 90)
    assert is_expired(replace(PRODUCT, expiry="2026-09-30"), today)
    assert not is_expiring_soon(replace(PRODUCT, expiry="12/2026"), today, 90)


@pytest.mark.parametrize(
    "changes,code",
    [
        ({"name": "  "}, "MISSING_NAME"),
        ({"sale_rate": Decimal("-1")}, "NEGATIVE_PRICE"),
        ({"stock": -2}, "INVALID_STOCK"),
        ({"gst_rate": Decimal("15")}, "UNSUPPORTED_TAX_RATE"),
    ],
)
def test_validate_product_rejects(changes, code):
    with pytest.raises(ValidationError) as exc:
        validate_product(replace(PRODUCT, **changes))

    assert exc.value.code == code


def test_product_catalog_line_uses_sale_rate():
    line = PRODUCT.to_catalog_line(quantity=4, discount_percent="2.5")

    assert line.unit_price == Decimal("15")
    assert line.quantity == 4
    assert line.tax_rate_percent == Decimal("12")
    assert line.discount_percent == Decimal("2.5")


def test_tax_table():
    assert [entry.rate for entry in load_tax_table()] == [0, 5, 12, 18, 28]
    assert require_supported_rate("12.00") == Decimal("12")
    assert entry_for_rate(Decimal("18")).half_rate == Decimal("9")
    with pytest.raises(ValidationError):
        require_supported_rate("abc")


@pytest.mark.parametrize(
    "company,party,expected",
    [
        ("27AAAAA0000A1Z5", "27ABCDE1234F1Z5", True),
        ("27AAAAA0000A1Z5", "29ABCDE1234F1Z5", False),
        ("27AAAAA0000A1Z5", "", True),
        ("", "29ABCDE1234F1Z5", True),
        ("27AAAAA0000A1Z5", "URP", True),
    ],
)
def test_is_intra_state(company, party, expected):
    assert is_intra_state(company, party) is expected


def test_gstin_state_code():
    assert gstin_state_code(" 07ABCDE1234F1Z5") == "07"
    assert gstin_state_code(None) is None


def test_search_parties():
    parties = [Party("City Medical Store", id=1), Party("Wellness Pharmacy", id=2)]

    assert [p.id for p in search_parties(parties, "well")] == [2]
    assert [p.id for p in search_parties(parties)] == [1, 2]
