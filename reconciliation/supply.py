"""Circulating-supply figures for each sale generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from infra.ledger.errors import LedgerClientError
from infra.ledger.protocols import LedgerReader

from .errors import MalformedRecordError
from .schema import SaleRecord, SchemaGeneration, coerce_id, coerce_int

LOGGER = logging.getLogger(__name__)

DEFAULT_PURCHASE_EVENT_LIMIT = 100

SupplySource = Literal["embedded_authority", "total_supply_counter", "purchase_events", "unavailable"]


@dataclass(frozen=True)
class SupplyFigure:
    """Circulating units of a sale plus the path that produced the number."""

    sale_id: str
    total_units: int
    circulating: int
    source: SupplySource
    decimals: int = 0
    raw_circulating: int | None = None
    approximate: bool = False

    @property
    def remaining(self) -> int:
        return max(0, self.total_units - self.circulating)


class SupplyCalculator:
    """Derives ``circulating`` for a sale, branching on its schema generation."""

    def __init__(
        self,
        reader: LedgerReader,
        *,
        purchase_event_type: str | None = None,
        purchase_event_limit: int = DEFAULT_PURCHASE_EVENT_LIMIT,
    ) -> None:
        self.reader = reader
        self.purchase_event_type = purchase_event_type
        self.purchase_event_limit = max(1, int(purchase_event_limit))

    async def circulating(self, sale: SaleRecord) -> int:
        return (await self.figure(sale)).circulating

    async def figure(self, sale: SaleRecord) -> SupplyFigure:
        if sale.generation is SchemaGeneration.DIRECT_ASSET:
            issued = sale.authority.issued
            if issued is None:
                return self._unavailable(sale)
            return SupplyFigure(
                sale_id=sale.object_id,
                total_units=sale.total_units,
                circulating=max(0, issued),
                source="embedded_authority",
                raw_circulating=issued,
            )

        counter = await self._total_supply(sale.asset_type)
        if counter is not None:
            decimals = await self.decimals(sale.asset_type)
            return SupplyFigure(
                sale_id=sale.object_id,
                total_units=sale.total_units,
                circulating=max(0, counter) // (10**decimals),
                source="total_supply_counter",
                decimals=decimals,
                raw_circulating=counter,
            )

        purchased = await self._purchased_from_events(sale)
        if purchased is None:
            return self._unavailable(sale)
        LOGGER.warning(
            "Supply counter unavailable for %s; using %d purchase events (may undercount beyond the scan window)",
            sale.object_id,
            self.purchase_event_limit,
        )
        return SupplyFigure(
            sale_id=sale.object_id,
            total_units=sale.total_units,
            circulating=purchased,
            source="purchase_events",
            raw_circulating=purchased,
            approximate=True,
        )

    async def decimals(self, coin_type: str) -> int:
        """Decimals of a fungible receipt type; 0 when not registered."""

        try:
            metadata = await self.reader.get_coin_metadata(coin_type)
        except LedgerClientError as exc:
            LOGGER.debug("Coin metadata read failed for %s: %s", coin_type, exc)
            return 0
        if metadata is None or metadata.decimals < 0:
            return 0
        return metadata.decimals

    async def _total_supply(self, coin_type: str) -> int | None:
        try:
            return await self.reader.get_total_supply(coin_type)
        except LedgerClientError as exc:
            LOGGER.debug("Total supply read failed for %s: %s", coin_type, exc)
            return None

    async def _purchased_from_events(self, sale: SaleRecord) -> int | None:
        if not self.purchase_event_type:
            return None
        try:
            events = await self.reader.query_events(
                self.purchase_event_type,
                descending=True,
                limit=self.purchase_event_limit,
            )
        except LedgerClientError as exc:
            LOGGER.debug("Purchase event scan failed for %s: %s", sale.object_id, exc)
            return None
        total = 0
        for event in events:
            try:
                if coerce_id(event.payload.get("sale_id")) != sale.object_id:
                    continue
                total += coerce_int(event.payload.get("amount"), "amount")
            except MalformedRecordError:
                continue
        return total

    def _unavailable(self, sale: SaleRecord) -> SupplyFigure:
        LOGGER.info("No supply source available for sale %s", sale.object_id)
        return SupplyFigure(
            sale_id=sale.object_id,
            total_units=sale.total_units,
            circulating=0,
            source="unavailable",
            approximate=True,
        )


__all__ = ["DEFAULT_PURCHASE_EVENT_LIMIT", "SupplyCalculator", "SupplyFigure", "SupplySource"]
