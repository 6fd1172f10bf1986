"""Attribution of recent purchase transactions to the sales they touched."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Literal, Sequence

from infra.ledger.protocols import LedgerReader, MoveFunction

from .schema import SaleRecord

LOGGER = logging.getLogger(__name__)

UNKNOWN_SALE = "unknown"

LinkMode = Literal["sale", "authority", "unknown"]


@dataclass(frozen=True)
class PurchaseLink:
    digest: str
    matched_by: LinkMode
    created_receipts: tuple[str, ...]
    mutated: tuple[str, ...]


class PurchaseLinker:
    """Scans recent purchase calls and groups them by the sale they mutated.

    A purchase is linked to a sale when the sale object itself was mutated,
    otherwise when the sale's issuance authority was; anything else lands
    under ``"unknown"``.
    """

    def __init__(self, reader: LedgerReader, *, purchase_function: MoveFunction, limit: int = 100) -> None:
        self.reader = reader
        self.purchase_function = purchase_function
        self.limit = max(1, int(limit))

    async def link_recent(self, sales: Sequence[SaleRecord]) -> Dict[str, List[PurchaseLink]]:
        transactions = await self.reader.query_transactions(move_function=self.purchase_function, limit=self.limit)
        sale_ids = {sale.object_id for sale in sales}
        authority_to_sale = {sale.authority.object_id: sale.object_id for sale in sales}

        links: Dict[str, List[PurchaseLink]] = defaultdict(list)
        for effects in transactions:
            mutated = tuple(change.object_id for change in effects.mutated)
            receipts = tuple(
                change.object_id
                for change in effects.created
                if any(sale.is_receipt(change.object_type) for sale in sales)
            )
            sale_match = next((object_id for object_id in mutated if object_id in sale_ids), None)
            authority_match = next((object_id for object_id in mutated if object_id in authority_to_sale), None)
            if sale_match:
                key, mode = sale_match, "sale"
            elif authority_match:
                key, mode = authority_to_sale[authority_match], "authority"
            else:
                key, mode = UNKNOWN_SALE, "unknown"
            links[key].append(
                PurchaseLink(digest=effects.digest, matched_by=mode, created_receipts=receipts, mutated=mutated)
            )
        LOGGER.debug("Linked %d purchase transactions across %d keys", len(transactions), len(links))
        return dict(links)


__all__ = ["PurchaseLink", "PurchaseLinker", "UNKNOWN_SALE"]
