"""Tabular views of reconciliation results for CLI output and CSV export."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Sequence

import pandas as pd

from .catalog import CatalogEntry
from .holdings import ReceiptHolding
from .linking import PurchaseLink
from .pricing import format_amount

CATALOG_COLUMNS = [
    "sale_id",
    "generation",
    "status",
    "name",
    "symbol",
    "total_units",
    "circulating",
    "remaining",
    "price_per_unit",
    "price_display",
    "metadata_source",
    "supply_source",
]


def catalog_frame(entries: Sequence[CatalogEntry], *, decimals: int = 6, symbol: str = "$") -> pd.DataFrame:
    rows = []
    for entry in entries:
        summary = entry.to_summary()
        summary["price_display"] = format_amount(entry.price_per_unit, decimals=decimals, symbol=symbol)
        rows.append({column: summary.get(column) for column in CATALOG_COLUMNS})
    return pd.DataFrame(rows, columns=CATALOG_COLUMNS)


def holdings_frame(sale_id: str, receipts: Iterable[ReceiptHolding]) -> pd.DataFrame:
    columns = ["sale_id", "object_id", "type_tag", "balance", "attributed_by", "creating_transaction"]
    rows = [
        {
            "sale_id": sale_id,
            "object_id": receipt.object_id,
            "type_tag": receipt.type_tag,
            "balance": receipt.balance,
            "attributed_by": receipt.attributed_by,
            "creating_transaction": receipt.creating_transaction,
        }
        for receipt in receipts
    ]
    return pd.DataFrame(rows, columns=columns)


def links_frame(links: Mapping[str, Sequence[PurchaseLink]]) -> pd.DataFrame:
    columns = ["sale_id", "digest", "matched_by", "created_receipts", "mutated"]
    rows = [
        {
            "sale_id": sale_id,
            "digest": link.digest,
            "matched_by": link.matched_by,
            "created_receipts": len(link.created_receipts),
            "mutated": len(link.mutated),
        }
        for sale_id, sale_links in links.items()
        for link in sale_links
    ]
    return pd.DataFrame(rows, columns=columns)


def export_csv(frame: pd.DataFrame, path: Path | str) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(target, index=False)
    return target


__all__ = ["CATALOG_COLUMNS", "catalog_frame", "export_csv", "holdings_frame", "links_frame"]
