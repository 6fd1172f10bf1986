#!/usr/bin/env python3
"""Show one sale in detail, optionally quoting a purchase of N units."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Sequence

from infra.ledger import LedgerClientError
from reconciliation.pricing import format_amount, quote_purchase
from reconciliation.report import catalog_frame, export_csv
from reconciliation.service import SaleReconciler
from scripts.list_sales import (
    add_common_arguments,
    build_reader,
    configure_logging,
    emit_summary,
    export_path,
    failure_summary,
    resolve_config,
    run_with_reader,
)

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve a single sale's metadata, supply and pricing.")
    parser.add_argument("--sale-id", required=True, help="Object id of the sale record.")
    parser.add_argument("--amount", type=int, help="Quote the cost of buying this many units.")
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    if args.amount is not None and args.amount <= 0:
        parser.error("--amount must be a positive integer")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = resolve_config(args)
    reader = build_reader(config)
    reconciler = SaleReconciler(reader, config)

    try:
        entry = run_with_reader(reader, lambda _: reconciler.sale_detail(args.sale_id))
    except LedgerClientError as exc:
        LOGGER.error("Sale lookup failed for %s: %s", args.sale_id, exc)
        return emit_summary(failure_summary("show_sale", exc, sale_id=args.sale_id))

    if entry is None:
        return emit_summary({"status": "not_found", "command": "show_sale", "sale_id": args.sale_id})

    decimals = config.display.payment_decimals
    symbol = config.display.currency_symbol
    summary: dict[str, Any] = {"status": "succeeded", "command": "show_sale", "sale": entry.to_summary()}
    summary["sale"]["price_display"] = format_amount(entry.price_per_unit, decimals=decimals, symbol=symbol)
    if args.amount is not None:
        quote = quote_purchase(
            entry.sale.total_price,
            entry.sale.total_units,
            args.amount,
            remaining=entry.supply.remaining,
        )
        summary["quote"] = {
            "amount": quote.amount,
            "price_per_unit": quote.price_per_unit,
            "cost": quote.cost,
            "cost_display": format_amount(quote.cost, decimals=decimals, symbol=symbol),
            "rounding_shortfall": quote.shortfall,
            "exceeds_remaining": quote.exceeds_remaining,
        }
    if args.csv:
        frame = catalog_frame([entry], decimals=decimals, symbol=symbol)
        summary["csv_path"] = str(export_csv(frame, export_path(args.csv)))
    return emit_summary(summary)


if __name__ == "__main__":
    raise SystemExit(main())
