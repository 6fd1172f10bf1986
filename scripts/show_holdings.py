#!/usr/bin/env python3
"""Report how many units of a sale an account holds."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Sequence

from infra.ledger import LedgerClientError
from reconciliation.report import export_csv, holdings_frame
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
    parser = argparse.ArgumentParser(description="Sum the sale receipts held by an account.")
    parser.add_argument("--account", required=True, help="Owner address to inspect.")
    parser.add_argument("--sale-id", required=True, help="Object id of the sale record.")
    add_common_arguments(parser)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = resolve_config(args)
    reader = build_reader(config)
    reconciler = SaleReconciler(reader, config)

    try:
        report = run_with_reader(reader, lambda _: reconciler.holdings(args.account, args.sale_id))
    except LedgerClientError as exc:
        LOGGER.error("Holdings lookup failed for %s: %s", args.account, exc)
        return emit_summary(failure_summary("show_holdings", exc, account=args.account, sale_id=args.sale_id))

    if report is None:
        return emit_summary(
            {"status": "not_found", "command": "show_holdings", "account": args.account, "sale_id": args.sale_id}
        )

    summary: dict[str, Any] = {
        "status": "succeeded",
        "command": "show_holdings",
        "account": report.account,
        "sale_id": report.sale_id,
        "units": report.units,
        "receipt_count": len(report.receipts),
        "receipts": [
            {
                "object_id": receipt.object_id,
                "balance": receipt.balance,
                "attributed_by": receipt.attributed_by,
                "creating_transaction": receipt.creating_transaction,
            }
            for receipt in report.receipts
        ],
    }
    if args.csv:
        summary["csv_path"] = str(export_csv(holdings_frame(report.sale_id, report.receipts), export_path(args.csv)))
    return emit_summary(summary)


if __name__ == "__main__":
    raise SystemExit(main())
