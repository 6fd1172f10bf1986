#!/usr/bin/env python3
"""List every sale announced on the ledger with its metadata and supply."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from infra.config import LedgerConfig, load_config
from infra.ledger import LedgerClientError, LedgerReader
from infra.paths import exports_root
from reconciliation.report import catalog_frame, export_csv
from reconciliation.service import SaleReconciler

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def add_common_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument("--config", help="Path to the YAML or JSON ledger config (defaults to configs/ledger.yml).")
    parser.add_argument("--rpc-url", help="Override the JSON-RPC endpoint from the config.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level written to stderr.",
    )
    parser.add_argument("--csv", help="Export the tabular view as CSV; relative paths land under the data root exports/ directory.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="List sales with resolved metadata, supply and pricing.")
    add_common_arguments(parser)
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def resolve_config(args: argparse.Namespace) -> LedgerConfig:
    config = load_config(args.config)
    if getattr(args, "rpc_url", None):
        config = replace(config, rpc=replace(config.rpc, url=args.rpc_url))
    return config


def export_path(value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else exports_root() / path


def build_reader(config: LedgerConfig) -> LedgerReader:
    return config.build_rpc_client()


def run_with_reader(reader: LedgerReader, work: Callable[[LedgerReader], Awaitable[T]]) -> T:
    async def _run() -> T:
        try:
            return await work(reader)
        finally:
            await reader.aclose()

    return asyncio.run(_run())


def failure_summary(command: str, error: Exception, **extra: Any) -> Mapping[str, Any]:
    payload = {"status": "failed", "command": command, "error": str(error), "error_type": type(error).__name__}
    payload.update(extra)
    return payload


def emit_summary(summary: Mapping[str, Any]) -> int:
    print(json.dumps(summary, indent=2, sort_keys=True))
    if summary.get("status") in {"succeeded", "not_found"}:
        return 0
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = resolve_config(args)
    reader = build_reader(config)
    reconciler = SaleReconciler(reader, config)

    try:
        entries = run_with_reader(reader, lambda _: reconciler.list_sales())
    except LedgerClientError as exc:
        LOGGER.error("Sale listing failed: %s", exc)
        return emit_summary(failure_summary("list_sales", exc, rpc_url=config.rpc.url))

    summary: dict[str, Any] = {
        "status": "succeeded",
        "command": "list_sales",
        "rpc_url": config.rpc.url,
        "sale_count": len(entries),
        "partial_count": sum(1 for entry in entries if entry.status == "partial"),
        "sales": [entry.to_summary() for entry in entries],
    }
    if args.csv:
        frame = catalog_frame(
            entries,
            decimals=config.display.payment_decimals,
            symbol=config.display.currency_symbol,
        )
        summary["csv_path"] = str(export_csv(frame, export_path(args.csv)))
    return emit_summary(summary)


if __name__ == "__main__":
    raise SystemExit(main())
