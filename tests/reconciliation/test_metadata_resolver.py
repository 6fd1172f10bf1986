from __future__ import annotations

import asyncio

from infra.ledger import CoinMetadata, InMemoryLedger, LedgerTransportError, ObjectChange, TransactionEffects
from reconciliation.metadata import MetadataResolver, find_metadata_change
from reconciliation.schema import parse_sale_record
from tests.reconciliation.ledger_fixtures import (
    GOLD,
    add_direct_sale,
    add_metadata,
    add_vault_sale,
    asset_metadata_type,
    cap_type,
)


def _resolve(ledger: InMemoryLedger, sale_id: str, **kwargs):
    sale = parse_sale_record(ledger.objects[sale_id])
    resolver = MetadataResolver(ledger, **kwargs)
    return asyncio.run(resolver.resolve(sale))


def test_direct_reference_short_circuits_later_steps():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1", name="Sunflowers")
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-1", previous_transaction="tx-sale")
    ledger.add_transaction("tx-sale", created=[("S1", None), ("meta-other", asset_metadata_type())])

    resolution = _resolve(ledger, "S1")

    assert resolution.is_found
    assert resolution.value.object_id == "meta-1"
    assert resolution.source == "direct_reference"
    assert resolution.attempts == ("direct_reference",)
    assert ledger.calls["get_object"] == 1
    assert ledger.calls["get_transaction"] == 0
    assert ledger.calls["query_transactions"] == 0


def test_resolution_is_idempotent_without_intervening_writes():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1", previous_transaction="tx-sale")
    ledger.add_transaction("tx-sale", created=[("S1", None), ("meta-9", asset_metadata_type())])
    add_metadata(ledger, "meta-9")
    sale = parse_sale_record(ledger.objects["S1"])
    resolver = MetadataResolver(ledger)

    first = asyncio.run(resolver.resolve(sale))
    second = asyncio.run(resolver.resolve(sale))

    assert first.value.object_id == second.value.object_id == "meta-9"
    assert first.source == second.source == "sale_creation_tx"


def test_history_scan_finds_metadata_created_with_the_authority():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1", previous_transaction="tx-sale")
    ledger.add_transaction(
        "tx-publish",
        created=[("cap-1", cap_type()), ("meta-7", asset_metadata_type())],
    )
    ledger.add_transaction("tx-sale", created=[("S1", None)], mutated=[("cap-1", cap_type())])
    add_metadata(ledger, "meta-7", name="Water Lilies")

    resolution = _resolve(ledger, "S1")

    assert resolution.is_found
    assert resolution.value.name == "Water Lilies"
    assert resolution.source == "authority_history_scan"
    assert resolution.attempts == ("sale_creation_tx", "authority_creation_tx", "authority_history_scan")


def test_authority_creation_tx_resolves_before_history_scan():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1", previous_transaction="tx-buy")
    ledger.add_object("cap-1", cap_type(), {}, previous_transaction="tx-create")
    ledger.add_transaction(
        "tx-create",
        created=[("cap-1", cap_type()), ("meta-4", asset_metadata_type())],
    )
    ledger.add_transaction("tx-buy", created=[("r1", None)], mutated=[("S1", None)])
    add_metadata(ledger, "meta-4", name="Haystacks")

    resolution = _resolve(ledger, "S1")

    assert resolution.is_found
    assert resolution.value.object_id == "meta-4"
    assert resolution.source == "authority_creation_tx"
    assert resolution.attempts == ("sale_creation_tx", "authority_creation_tx")
    assert ledger.calls["query_transactions"] == 0


def test_unresolvable_sale_returns_not_found_and_placeholder():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1", previous_transaction="tx-sale")
    ledger.add_transaction("tx-sale", created=[("S1", None)])
    sale = parse_sale_record(ledger.objects["S1"])
    resolver = MetadataResolver(ledger)

    resolution = asyncio.run(resolver.resolve(sale))
    placeholder = asyncio.run(resolver.resolve_or_placeholder(sale))

    assert not resolution.is_found
    assert resolution.status == "not_found"
    assert resolution.attempts == ("sale_creation_tx", "authority_creation_tx", "authority_history_scan")
    assert placeholder.is_placeholder
    assert placeholder.name == "Unknown Asset"


def test_failed_step_falls_through_to_next_strategy():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-gone", previous_transaction="tx-sale")
    ledger.add_transaction("tx-sale", created=[("S1", None), ("meta-2", asset_metadata_type())])
    add_metadata(ledger, "meta-2")
    ledger.fail("get_object", LedgerTransportError("node unavailable"), key="meta-gone")

    resolution = _resolve(ledger, "S1")

    assert resolution.source == "sale_creation_tx"
    assert resolution.value.object_id == "meta-2"
    assert resolution.attempts[0] == "direct_reference"


def test_malformed_direct_reference_is_skipped():
    ledger = InMemoryLedger()
    ledger.add_object("meta-bad", asset_metadata_type(), {"description": "no name or symbol"})
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-bad", previous_transaction="tx-sale")
    ledger.add_transaction("tx-sale", created=[("meta-3", asset_metadata_type())])
    add_metadata(ledger, "meta-3")

    resolution = _resolve(ledger, "S1")

    assert resolution.value.object_id == "meta-3"


def test_vault_payload_resolves_without_ledger_reads():
    ledger = InMemoryLedger()
    add_vault_sale(
        ledger,
        "V1",
        coin=GOLD,
        treasury_id="treasury-1",
        payload={"name": "Gold Bar", "symbol": "GLD", "image_url": "https://img.example/gold.png"},
    )

    resolution = _resolve(ledger, "V1")

    assert resolution.source == "embedded_payload"
    assert resolution.value.name == "Gold Bar"
    assert resolution.value.image_url == "https://img.example/gold.png"
    assert sum(ledger.calls.values()) == 0


def test_coin_metadata_generation_uses_registered_metadata():
    ledger = InMemoryLedger()
    add_vault_sale(ledger, "V2", coin=GOLD, treasury_id="treasury-2")
    ledger.coin_metadata[GOLD] = CoinMetadata(object_id="coin-meta-1", decimals=6, name="Gold", symbol="GLD")

    resolution = _resolve(ledger, "V2")

    assert resolution.source == "registered_coin_metadata"
    assert resolution.value.object_id == "coin-meta-1"
    assert resolution.value.symbol == "GLD"
    assert resolution.value.description == "No description available"


def test_find_metadata_change_prefers_exact_type_match():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1")
    sale = parse_sale_record(ledger.objects["S1"])
    foreign = "0xdead::tokenized_asset::AssetMetadata<0xa11ce::art::ART>"
    effects = TransactionEffects(
        digest="tx",
        changes=(
            ObjectChange("created", "loose", foreign),
            ObjectChange("created", "exact", asset_metadata_type()),
        ),
    )

    assert find_metadata_change(effects, sale).object_id == "exact"

    loose_only = TransactionEffects(digest="tx", changes=(ObjectChange("created", "loose", foreign),))
    assert find_metadata_change(loose_only, sale).object_id == "loose"
