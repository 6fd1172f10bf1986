"""Per-account receipt holdings for a specific sale."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Literal, Sequence

from infra.ledger.errors import LedgerClientError
from infra.ledger.protocols import LedgerObject, LedgerReader, TransactionEffects

from .errors import MalformedRecordError
from .schema import SaleRecord, parse_balance
from .supply import SupplyCalculator

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_SCAN_LIMIT = 50

Attribution = Literal["authority", "sale", "type"]


@dataclass(frozen=True)
class ReceiptHolding:
    """A receipt object attributed to a sale, with its raw balance."""

    object_id: str
    type_tag: str | None
    balance: int
    attributed_by: Attribution
    creating_transaction: str | None = None


class HoldingsAggregator:
    """Sums the receipt units an account holds for one sale.

    Direct-asset receipts share a type across every sale built from the same
    asset template, so each one is traced back to the transaction that created
    it and only counted when that transaction touched this sale or its
    authority. Fungible receipts are keyed by a per-asset coin type and need
    no tracing. Failures on an individual receipt count as zero.
    """

    def __init__(
        self,
        reader: LedgerReader,
        *,
        supply_calculator: SupplyCalculator | None = None,
        history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT,
        concurrency: int = 8,
    ) -> None:
        self.reader = reader
        self.supply_calculator = supply_calculator or SupplyCalculator(reader)
        self.history_scan_limit = max(1, int(history_scan_limit))
        self.concurrency = max(1, int(concurrency))

    async def holdings_for(self, account: str, sale: SaleRecord) -> int:
        receipts = await self.receipts_for(account, sale)
        return await self.units_held(sale, receipts)

    async def units_held(self, sale: SaleRecord, receipts: Sequence[ReceiptHolding]) -> int:
        """Whole sale units represented by ``receipts``; coin balances are scaled by decimals."""

        raw_total = sum(receipt.balance for receipt in receipts)
        if not sale.generation.uses_fungible_receipts or raw_total == 0:
            return raw_total
        decimals = await self.supply_calculator.decimals(sale.asset_type)
        return raw_total // (10**decimals)

    async def receipts_for(self, account: str, sale: SaleRecord) -> List[ReceiptHolding]:
        if sale.generation.uses_fungible_receipts:
            owned = await self.reader.get_owned_objects(account, struct_type=sale.receipt_type)
            holdings = [_typed_holding(obj, sale) for obj in owned]
            return [holding for holding in holdings if holding is not None]

        owned = await self.reader.get_owned_objects(account)
        candidates = [obj for obj in owned if sale.is_receipt(obj.type_tag)]
        semaphore = asyncio.Semaphore(self.concurrency)
        traced = await asyncio.gather(*(self._trace(obj, sale, semaphore) for obj in candidates))
        return [holding for holding in traced if holding is not None]

    async def _trace(self, obj: LedgerObject, sale: SaleRecord, semaphore: asyncio.Semaphore) -> ReceiptHolding | None:
        async with semaphore:
            try:
                effects = await self.creating_transaction(obj)
                if effects is None:
                    return None
                touched = effects.touched_ids()
                if sale.authority.object_id in touched:
                    attributed_by: Attribution = "authority"
                elif sale.object_id in touched:
                    attributed_by = "sale"
                else:
                    return None
                return ReceiptHolding(
                    object_id=obj.object_id,
                    type_tag=obj.type_tag,
                    balance=parse_balance(obj),
                    attributed_by=attributed_by,
                    creating_transaction=effects.digest,
                )
            except (LedgerClientError, MalformedRecordError) as exc:
                LOGGER.debug("Receipt %s skipped for sale %s: %s", obj.object_id, sale.object_id, exc)
                return None

    async def creating_transaction(self, obj: LedgerObject) -> TransactionEffects | None:
        """Transaction that created ``obj``; falls back to a bounded history scan
        when the object has been mutated since creation."""

        if obj.previous_transaction:
            effects = await self.reader.get_transaction(obj.previous_transaction)
            if effects is not None and obj.object_id in effects.created_ids():
                return effects
        history = await self.reader.query_transactions(changed_object=obj.object_id, limit=self.history_scan_limit)
        for effects in history:
            if obj.object_id in effects.created_ids():
                return effects
        return None


def _typed_holding(obj: LedgerObject, sale: SaleRecord) -> ReceiptHolding | None:
    if not sale.is_receipt(obj.type_tag):
        return None
    try:
        balance = parse_balance(obj)
    except MalformedRecordError as exc:
        LOGGER.debug("Coin %s has an unreadable balance: %s", obj.object_id, exc)
        return None
    return ReceiptHolding(object_id=obj.object_id, type_tag=obj.type_tag, balance=balance, attributed_by="type")


__all__ = ["DEFAULT_HISTORY_SCAN_LIMIT", "HoldingsAggregator", "ReceiptHolding"]
