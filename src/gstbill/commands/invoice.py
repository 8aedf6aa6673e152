"""Create an invoice from the command line."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from ..errors import BusinessRuleError, ValidationError
from ..invoices import InvoiceDraft
from ..settings import ProfileProvider
from ..utils import fmt2
from ._runtime import add_db_argument, open_configured_store


@dataclass(frozen=True)
class ItemArgument:
    product_id: int
    quantity: str
    discount: str | None = None


def parse_item(text: str) -> ItemArgument:
    """Parse ``PRODUCT_ID:QTY[:DISCOUNT]``."""

    parts = text.split(":")
    if len(parts) not in (2, 3) or not parts[0].strip().isdigit():
        raise argparse.ArgumentTypeError(
            f"expected PRODUCT_ID:QTY[:DISCOUNT], got {text!r}"
        )
    discount = parts[2].strip() if len(parts) == 3 else None
    return ItemArgument(int(parts[0]), parts[1].strip(), discount)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create and save a GST invoice.")
    parser.add_argument("--party", type=int, required=True, help="Party id")
    parser.add_argument(
        "--item",
        dest="items",
        type=parse_item,
        action="append",
        default=[],
        metavar="PRODUCT_ID:QTY[:DISCOUNT]",
        help="Line to add; repeat for several products.",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Invoice date (default today); must fall in the year of the invoice number",
    )
    parser.add_argument("--notes", default="", help="Remarks printed on the invoice")
    parser.add_argument(
        "--round-off",
        action="store_true",
        help="Round the payable amount to the nearest rupee.",
    )
    supply = parser.add_mutually_exclusive_group()
    supply.add_argument(
        "--intra-state",
        dest="intra",
        action="store_const",
        const=True,
        default=None,
        help="Split tax into CGST and SGST.",
    )
    supply.add_argument(
        "--inter-state",
        dest="intra",
        action="store_const",
        const=False,
        help="Charge IGST.",
    )
    add_db_argument(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _config, store = open_configured_store(args)
    with store:
        profile = ProfileProvider(store.load_profile).profile
        party = store.get_party(args.party)
        if party is None:
            raise BusinessRuleError(f"Party {args.party} not found.", code="MISSING_PARTY")

        draft = InvoiceDraft(store, profile, round_to_rupee=args.round_off)
        draft.notes = args.notes
        draft.select_party(party, intra_jurisdiction=args.intra)

        for spec in args.items:
            product = store.lookup_catalog_item(spec.product_id)
            if product is None:
                raise ValidationError(
                    f"Product {spec.product_id} not found.", code="UNKNOWN_PRODUCT"
                )
            draft.add_item(product)
            index = len(draft.items) - 1
            draft.update_quantity(index, spec.quantity)
            if spec.discount is not None:
                draft.update_discount(index, spec.discount)

        invoice = draft.save(args.date)

    totals = invoice.totals
    print(f"Invoice {invoice.invoice_no} saved for {invoice.party_name}")
    print(f"  Taxable:     {fmt2(totals.total_taxable)}")
    if totals.total_inter_jurisdiction:
        print(f"  IGST:        {fmt2(totals.total_inter_jurisdiction)}")
    else:
        print(f"  CGST:        {fmt2(totals.total_split_a)}")
        print(f"  SGST:        {fmt2(totals.total_split_b)}")
    print(f"  Grand total: {fmt2(totals.grand_total)}")
    if invoice.round_off:
        print(f"  Round off:   {fmt2(invoice.round_off)}")
        print(f"  Payable:     {fmt2(invoice.payable)}")
    return 0
