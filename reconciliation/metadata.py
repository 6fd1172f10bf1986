"""Layered lookup of the descriptive metadata object behind a sale.

No field reliably links metadata to a sale across every schema revision, so
the resolver walks strategies from cheapest to most expensive:

1. ``direct_reference``: the sale's ``meta_id`` field.
   Generation-specific shortcuts follow: the embedded vault payload
   (``embedded_payload``) or the coin type's registered metadata
   (``registered_coin_metadata``).
2. ``sale_creation_tx``: objects created by the sale's previous transaction.
3. ``authority_creation_tx``: objects created by the issuance authority's
   previous transaction.
4. ``authority_history_scan``: a bounded scan of transactions touching the
   authority, looking for the one that created it.

A step that raises a transport error or hits malformed data counts as failed
and the next step runs; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Tuple

from infra.ledger.errors import LedgerClientError
from infra.ledger.protocols import LedgerReader, ObjectChange, TransactionEffects

from .errors import MalformedRecordError
from .results import Resolution
from .schema import MetadataRecord, SaleRecord, SchemaGeneration

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_SCAN_LIMIT = 50

Step = Callable[[SaleRecord], Awaitable[MetadataRecord | None]]


class MetadataResolver:
    """Resolves ``SaleRecord -> MetadataRecord`` through ordered fallbacks."""

    def __init__(self, reader: LedgerReader, *, history_scan_limit: int = DEFAULT_HISTORY_SCAN_LIMIT) -> None:
        self.reader = reader
        self.history_scan_limit = max(1, int(history_scan_limit))

    async def resolve(self, sale: SaleRecord) -> Resolution[MetadataRecord]:
        attempts: list[str] = []
        for name, step in self._plan(sale):
            attempts.append(name)
            try:
                record = await step(sale)
            except (LedgerClientError, MalformedRecordError) as exc:
                LOGGER.debug("Metadata step %s failed for sale %s: %s", name, sale.object_id, exc)
                continue
            if record is not None:
                return Resolution.found(record, source=name, attempts=tuple(attempts))
        LOGGER.info("No metadata found for sale %s after %s", sale.object_id, ", ".join(attempts) or "no steps")
        return Resolution.not_found(attempts=tuple(attempts))

    async def resolve_or_placeholder(self, sale: SaleRecord) -> MetadataRecord:
        resolution = await self.resolve(sale)
        return resolution.value_or(MetadataRecord.placeholder())

    def _plan(self, sale: SaleRecord) -> List[Tuple[str, Step]]:
        steps: List[Tuple[str, Step]] = []
        if sale.meta_id:
            steps.append(("direct_reference", self._direct_reference))
        if sale.generation is SchemaGeneration.VAULT and sale.payload is not None:
            steps.append(("embedded_payload", self._embedded_payload))
        if sale.generation is SchemaGeneration.VAULT_COIN_METADATA:
            steps.append(("registered_coin_metadata", self._registered_coin_metadata))
        if sale.previous_transaction:
            steps.append(("sale_creation_tx", self._sale_creation_tx))
        steps.append(("authority_creation_tx", self._authority_creation_tx))
        steps.append(("authority_history_scan", self._authority_history_scan))
        return steps

    async def _direct_reference(self, sale: SaleRecord) -> MetadataRecord | None:
        obj = await self.reader.get_object(sale.meta_id)
        return MetadataRecord.from_object(obj) if obj is not None else None

    async def _embedded_payload(self, sale: SaleRecord) -> MetadataRecord | None:
        return sale.payload

    async def _registered_coin_metadata(self, sale: SaleRecord) -> MetadataRecord | None:
        metadata = await self.reader.get_coin_metadata(sale.asset_type)
        if metadata is None:
            return None
        return MetadataRecord.from_coin_metadata(sale.asset_type, metadata)

    async def _sale_creation_tx(self, sale: SaleRecord) -> MetadataRecord | None:
        effects = await self.reader.get_transaction(sale.previous_transaction)
        return await self._metadata_created_in(effects, sale)

    async def _authority_creation_tx(self, sale: SaleRecord) -> MetadataRecord | None:
        authority = await self.reader.get_object(sale.authority.object_id)
        if authority is None or not authority.previous_transaction:
            return None
        effects = await self.reader.get_transaction(authority.previous_transaction)
        return await self._metadata_created_in(effects, sale)

    async def _authority_history_scan(self, sale: SaleRecord) -> MetadataRecord | None:
        authority_id = sale.authority.object_id
        history = await self.reader.query_transactions(changed_object=authority_id, limit=self.history_scan_limit)
        for effects in history:
            if authority_id in effects.created_ids():
                return await self._metadata_created_in(effects, sale)
        return None

    async def _metadata_created_in(self, effects: TransactionEffects | None, sale: SaleRecord) -> MetadataRecord | None:
        if effects is None:
            return None
        change = find_metadata_change(effects, sale)
        if change is None:
            return None
        obj = await self.reader.get_object(change.object_id)
        return MetadataRecord.from_object(obj) if obj is not None else None


def find_metadata_change(effects: TransactionEffects, sale: SaleRecord) -> ObjectChange | None:
    """Created object matching the sale's metadata type, exact match preferred."""

    created = effects.created
    for change in created:
        if sale.is_metadata_type(change.object_type):
            return change
    for change in created:
        if sale.is_metadata_type(change.object_type, exact=False):
            return change
    return None


__all__ = ["DEFAULT_HISTORY_SCAN_LIMIT", "MetadataResolver", "find_metadata_change"]
