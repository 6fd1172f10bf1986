#!/usr/bin/env python3
"""Group recent purchase transactions by the sale they touched."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Sequence

from infra.ledger import LedgerClientError
from reconciliation.report import export_csv, links_frame
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
    parser = argparse.ArgumentParser(description="Attribute recent purchase calls to sales.")
    add_common_arguments(parser)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = resolve_config(args)
    reader = build_reader(config)
    reconciler = SaleReconciler(reader, config)

    try:
        links = run_with_reader(reader, lambda _: reconciler.link_purchases())
    except LedgerClientError as exc:
        LOGGER.error("Purchase linking failed: %s", exc)
        return emit_summary(failure_summary("link_purchases", exc))

    summary: dict[str, Any] = {
        "status": "succeeded",
        "command": "link_purchases",
        "purchase_function": config.packages.purchase_function.target,
        "transaction_count": sum(len(items) for items in links.values()),
        "links": {
            sale_id: [
                {
                    "digest": link.digest,
                    "matched_by": link.matched_by,
                    "created_receipts": list(link.created_receipts),
                }
                for link in items
            ]
            for sale_id, items in links.items()
        },
    }
    if args.csv:
        summary["csv_path"] = str(export_csv(links_frame(links), export_path(args.csv)))
    return emit_summary(summary)


if __name__ == "__main__":
    raise SystemExit(main())
