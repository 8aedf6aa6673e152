"""Print the dashboard figures."""

from __future__ import annotations

import argparse
from datetime import date
from typing import Sequence

from ..reporting import dashboard_stats
from ..utils import fmt2
from ._runtime import add_db_argument, open_configured_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Show total sales, invoice count, low-stock and expiring items."
    )
    add_db_argument(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config, store = open_configured_store(args)
    with store:
        stats = dashboard_stats(
            store.list_products(),
            store.list_invoices(),
            today=date.today(),
            low_stock_threshold=config.low_stock_threshold,
            expiry_window_days=config.expiry_window_days,
        )

    print(f"Total sales:      {fmt2(stats.total_sales)}")
    print(f"Invoices:         {stats.total_invoices}")
    print(f"Low stock items:  {stats.low_stock_items} (below {config.low_stock_threshold})")
    print(
        f"Expiring soon:    {stats.expiring_soon_items}"
        f" (within {config.expiry_window_days} days)"
    )
    return 0
