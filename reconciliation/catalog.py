"""Sale listing and sale detail views assembled from the event log."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Sequence

from infra.ledger.protocols import LedgerEvent, LedgerObject, LedgerReader

from .errors import MalformedRecordError
from .metadata import MetadataResolver
from .results import Resolution
from .schema import MetadataRecord, SaleRecord, parse_sale_record
from .supply import SupplyCalculator, SupplyFigure

LOGGER = logging.getLogger(__name__)

DEFAULT_EVENT_LIMIT = 100
DEFAULT_CONCURRENCY = 8
_SALE_ID_KEYS = ("sale_id", "object_id")


@dataclass(frozen=True)
class CatalogEntry:
    """One sale with its independently resolved metadata and supply."""

    sale: SaleRecord
    metadata: Resolution[MetadataRecord]
    supply: SupplyFigure

    @property
    def price_per_unit(self) -> int:
        return self.sale.price_per_unit

    @property
    def display_metadata(self) -> MetadataRecord:
        return self.metadata.value_or(MetadataRecord.placeholder())

    @property
    def status(self) -> Literal["found", "partial"]:
        if self.metadata.is_found and self.supply.source != "unavailable":
            return "found"
        return "partial"

    def to_summary(self) -> Dict[str, Any]:
        meta = self.display_metadata
        return {
            "sale_id": self.sale.object_id,
            "generation": self.sale.generation.value,
            "status": self.status,
            "name": meta.name,
            "symbol": meta.symbol,
            "description": meta.description,
            "image_url": meta.image_url,
            "metadata_id": meta.object_id,
            "metadata_source": self.metadata.source,
            "metadata_attempts": list(self.metadata.attempts),
            "total_units": self.sale.total_units,
            "total_price": self.sale.total_price,
            "price_per_unit": self.price_per_unit,
            "circulating": self.supply.circulating,
            "remaining": self.supply.remaining,
            "supply_source": self.supply.source,
            "supply_approximate": self.supply.approximate,
            "authority_id": self.sale.authority.object_id,
            "receipt_type": self.sale.receipt_type,
        }


def extract_sale_ids(events: Iterable[LedgerEvent]) -> List[str]:
    """Sale identifiers in event order, de-duplicated keeping first occurrence."""

    ordered: Dict[str, None] = {}
    for event in events:
        value = next((event.payload.get(key) for key in _SALE_ID_KEYS if event.payload.get(key)), None)
        if value:
            ordered.setdefault(str(value), None)
    return list(ordered)


class SaleCatalogBuilder:
    """Discovers sales and resolves their derived fields concurrently."""

    def __init__(
        self,
        reader: LedgerReader,
        *,
        sale_started_event: str,
        metadata_resolver: MetadataResolver | None = None,
        supply_calculator: SupplyCalculator | None = None,
        event_limit: int = DEFAULT_EVENT_LIMIT,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.reader = reader
        self.sale_started_event = sale_started_event
        self.metadata_resolver = metadata_resolver or MetadataResolver(reader)
        self.supply_calculator = supply_calculator or SupplyCalculator(reader)
        self.event_limit = max(1, int(event_limit))
        self.concurrency = max(1, int(concurrency))

    async def discover_sale_ids(self) -> List[str]:
        events = await self.reader.query_events(self.sale_started_event, descending=True, limit=self.event_limit)
        return extract_sale_ids(events)

    async def load_sales(self) -> List[SaleRecord]:
        """Parsed sale records in event order, without resolving derived fields."""

        sale_ids = await self.discover_sale_ids()
        if not sale_ids:
            return []
        objects = await self.reader.multi_get_objects(sale_ids)
        return _parse_sales(sale_ids, objects)

    async def list_sales(self) -> List[CatalogEntry]:
        """Most recent sale first; transport failures of the discovery reads propagate."""

        sales = await self.load_sales()
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [asyncio.create_task(self._resolve_entry(sale, semaphore)) for sale in sales]
        return list(await asyncio.gather(*tasks))

    async def load_sale(self, sale_id: str) -> SaleRecord | None:
        """Point read of one sale; ``None`` when missing or malformed."""

        obj = await self.reader.get_object(sale_id)
        if obj is None:
            return None
        try:
            return parse_sale_record(obj)
        except MalformedRecordError as exc:
            LOGGER.warning("Sale %s is malformed: %s", sale_id, exc)
            return None

    async def sale_detail(self, sale_id: str) -> CatalogEntry | None:
        sale = await self.load_sale(sale_id)
        if sale is None:
            return None
        return await self._resolve_entry(sale, asyncio.Semaphore(1))

    async def _resolve_entry(self, sale: SaleRecord, semaphore: asyncio.Semaphore) -> CatalogEntry:
        async with semaphore:
            metadata, supply = await asyncio.gather(
                self.metadata_resolver.resolve(sale),
                self.supply_calculator.figure(sale),
            )
        return CatalogEntry(sale=sale, metadata=metadata, supply=supply)


def _parse_sales(sale_ids: Sequence[str], objects: Sequence[LedgerObject | None]) -> List[SaleRecord]:
    sales: List[SaleRecord] = []
    for sale_id, obj in zip(sale_ids, objects):
        if obj is None:
            LOGGER.warning("Sale %s announced by event log but not found on ledger", sale_id)
            continue
        try:
            sales.append(parse_sale_record(obj))
        except MalformedRecordError as exc:
            LOGGER.warning("Skipping malformed sale %s: %s", sale_id, exc)
    return sales


__all__ = [
    "CatalogEntry",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_EVENT_LIMIT",
    "SaleCatalogBuilder",
    "extract_sale_ids",
]
