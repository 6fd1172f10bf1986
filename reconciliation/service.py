"""Wires the resolvers together from a ``LedgerConfig``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from infra.config import LedgerConfig
from infra.ledger.protocols import LedgerReader

from .catalog import CatalogEntry, SaleCatalogBuilder
from .holdings import HoldingsAggregator, ReceiptHolding
from .linking import PurchaseLink, PurchaseLinker
from .metadata import MetadataResolver
from .supply import SupplyCalculator


@dataclass(frozen=True)
class HoldingsReport:
    """Return payload for a holdings lookup."""

    account: str
    sale_id: str
    units: int
    receipts: List[ReceiptHolding]


class SaleReconciler:
    """Entry point for the three derived views plus purchase linking."""

    def __init__(self, reader: LedgerReader, config: LedgerConfig | None = None) -> None:
        self.reader = reader
        self.config = config or LedgerConfig()
        limits = self.config.limits
        packages = self.config.packages
        self.metadata = MetadataResolver(reader, history_scan_limit=limits.history_scan_limit)
        self.supply = SupplyCalculator(
            reader,
            purchase_event_type=packages.purchase_event,
            purchase_event_limit=limits.purchase_event_limit,
        )
        self.catalog = SaleCatalogBuilder(
            reader,
            sale_started_event=packages.sale_started_event,
            metadata_resolver=self.metadata,
            supply_calculator=self.supply,
            event_limit=limits.event_limit,
            concurrency=self.config.concurrency,
        )
        self.holdings_aggregator = HoldingsAggregator(
            reader,
            supply_calculator=self.supply,
            history_scan_limit=limits.history_scan_limit,
            concurrency=self.config.concurrency,
        )
        self.linker = PurchaseLinker(
            reader,
            purchase_function=packages.purchase_function,
            limit=limits.purchase_scan_limit,
        )

    async def list_sales(self) -> List[CatalogEntry]:
        return await self.catalog.list_sales()

    async def sale_detail(self, sale_id: str) -> CatalogEntry | None:
        return await self.catalog.sale_detail(sale_id)

    async def holdings(self, account: str, sale_id: str) -> HoldingsReport | None:
        """Holdings of ``account`` for ``sale_id``; ``None`` when the sale is unknown."""

        sale = await self.catalog.load_sale(sale_id)
        if sale is None:
            return None
        receipts = await self.holdings_aggregator.receipts_for(account, sale)
        units = await self.holdings_aggregator.units_held(sale, receipts)
        return HoldingsReport(account=account, sale_id=sale_id, units=units, receipts=receipts)

    async def link_purchases(self) -> Dict[str, List[PurchaseLink]]:
        sales = await self.catalog.load_sales()
        return await self.linker.link_recent(sales)


__all__ = ["HoldingsReport", "SaleReconciler"]
