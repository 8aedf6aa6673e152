"""Compute the GST breakdown of a single line without touching the database."""

from __future__ import annotations

import argparse
from typing import Sequence

from ..calculator import compute_line, make_line
from ..utils import fmt2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show the tax breakdown for one invoice line.")
    parser.add_argument("--price", required=True, help="Unit sale price")
    parser.add_argument("--qty", required=True, help="Quantity (whole number, at least 1)")
    parser.add_argument("--rate", required=True, help="GST rate: 0, 5, 12, 18 or 28")
    parser.add_argument("--discount", default="0", help="Discount percent (0-100)")
    parser.add_argument(
        "--inter-state",
        action="store_true",
        help="Charge IGST instead of splitting into CGST and SGST.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    line = make_line(args.price, args.qty, args.rate, args.discount)
    computed = compute_line(line, intra_jurisdiction=not args.inter_state)

    rows = (
        ("Base amount", computed.base_amount),
        ("Discount", computed.discount_amount),
        ("Taxable value", computed.taxable_value),
        ("CGST", computed.tax_split_a),
        ("SGST", computed.tax_split_b),
        ("IGST", computed.inter_jurisdiction_tax),
        ("Line total", computed.line_total),
    )
    for label, value in rows:
        print(f"{label:<14}{fmt2(value):>14}")
    return 0
