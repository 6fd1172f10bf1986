from __future__ import annotations

import asyncio

from infra.ledger import InMemoryLedger, MoveFunction
from reconciliation.linking import UNKNOWN_SALE, PurchaseLinker
from reconciliation.schema import parse_sale_record
from tests.reconciliation.ledger_fixtures import (
    GOLD,
    TEMPLATE,
    add_direct_sale,
    add_vault_sale,
    cap_type,
    coin_type,
    tokenized_asset_type,
)

BUY = MoveFunction(TEMPLATE, "template", "buy")


def test_purchases_grouped_by_sale_then_authority_then_unknown():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1")
    add_vault_sale(ledger, "V1", coin=GOLD, treasury_id="treasury-1")
    sales = [parse_sale_record(ledger.objects[sale_id]) for sale_id in ("S1", "V1")]
    ledger.add_transaction(
        "tx-1",
        created=[("r1", tokenized_asset_type())],
        mutated=[("S1", None), ("cap-1", cap_type())],
        move_function=BUY,
    )
    ledger.add_transaction(
        "tx-2",
        created=[("c1", coin_type(GOLD))],
        mutated=[("treasury-1", None)],
        move_function=BUY,
    )
    ledger.add_transaction("tx-3", mutated=[("elsewhere", None)], move_function=BUY)
    ledger.add_transaction("tx-other", mutated=[("S1", None)])

    links = asyncio.run(PurchaseLinker(ledger, purchase_function=BUY).link_recent(sales))

    assert set(links) == {"S1", "V1", UNKNOWN_SALE}
    assert [(link.digest, link.matched_by, link.created_receipts) for link in links["S1"]] == [
        ("tx-1", "sale", ("r1",))
    ]
    assert [(link.digest, link.matched_by, link.created_receipts) for link in links["V1"]] == [
        ("tx-2", "authority", ("c1",))
    ]
    assert [link.digest for link in links[UNKNOWN_SALE]] == ["tx-3"]


def test_scan_respects_limit_and_recency():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1")
    sales = [parse_sale_record(ledger.objects["S1"])]
    for index in range(5):
        ledger.add_transaction(f"tx-{index}", mutated=[("S1", None)], move_function=BUY)

    links = asyncio.run(PurchaseLinker(ledger, purchase_function=BUY, limit=2).link_recent(sales))

    assert [link.digest for link in links["S1"]] == ["tx-4", "tx-3"]
