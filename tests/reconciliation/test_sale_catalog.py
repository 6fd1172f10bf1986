from __future__ import annotations

import asyncio

import pytest

from infra.ledger import InMemoryLedger, LedgerEvent, LedgerTransportError
from reconciliation.catalog import SaleCatalogBuilder, extract_sale_ids
from tests.reconciliation.ledger_fixtures import (
    GOLD,
    SALE_STARTED,
    add_direct_sale,
    add_metadata,
    add_vault_sale,
    asset_metadata_type,
)


def _builder(ledger: InMemoryLedger, **kwargs) -> SaleCatalogBuilder:
    return SaleCatalogBuilder(ledger, sale_started_event=SALE_STARTED, **kwargs)


def test_extract_sale_ids_dedupes_keeping_first_occurrence():
    events = [
        LedgerEvent(SALE_STARTED, {"sale_id": "S1"}),
        LedgerEvent(SALE_STARTED, {"sale_id": "S2"}),
        LedgerEvent(SALE_STARTED, {"sale_id": "S1"}),
        LedgerEvent(SALE_STARTED, {"object_id": "S3"}),
        LedgerEvent(SALE_STARTED, {}),
    ]

    assert extract_sale_ids(events) == ["S1", "S2", "S3"]


def test_list_sales_preserves_event_order_without_duplicates():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1")
    add_direct_sale(ledger, "S1", cap_id="cap-1", issued=3, meta_id="meta-1")
    add_direct_sale(ledger, "S2", cap_id="cap-2", issued=0, meta_id="meta-1")
    for sale_id in ("S1", "S2", "S1"):
        ledger.emit_event(SALE_STARTED, {"sale_id": sale_id})

    entries = asyncio.run(_builder(ledger).list_sales())

    assert [entry.sale.object_id for entry in entries] == ["S1", "S2"]
    assert ledger.calls["multi_get_objects"] == 1
    first = entries[0].to_summary()
    assert first["price_per_unit"] == 50
    assert first["circulating"] == 3
    assert first["remaining"] == 997
    assert first["status"] == "found"


def test_unresolvable_metadata_degrades_single_entry_to_placeholder():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1")
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-1")
    add_direct_sale(ledger, "S2", cap_id="cap-2", meta_id="meta-missing")
    ledger.emit_event(SALE_STARTED, {"sale_id": "S2"})
    ledger.emit_event(SALE_STARTED, {"sale_id": "S1"})

    entries = asyncio.run(_builder(ledger).list_sales())
    by_id = {entry.sale.object_id: entry for entry in entries}

    assert by_id["S1"].status == "found"
    assert by_id["S2"].status == "partial"
    assert by_id["S2"].display_metadata.is_placeholder
    assert by_id["S2"].to_summary()["name"] == "Unknown Asset"


def test_sibling_failure_does_not_leak_between_entries():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1")
    add_metadata(ledger, "meta-2", name="Irises", symbol="IRS")
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-1")
    add_direct_sale(ledger, "S2", cap_id="cap-2", meta_id="meta-2")
    ledger.emit_event(SALE_STARTED, {"sale_id": "S1"})
    ledger.emit_event(SALE_STARTED, {"sale_id": "S2"})
    ledger.fail("get_object", LedgerTransportError("flaky"), key="meta-2")

    entries = asyncio.run(_builder(ledger, concurrency=1).list_sales())
    by_id = {entry.sale.object_id: entry for entry in entries}

    assert by_id["S1"].display_metadata.name == "Sunflowers"
    assert by_id["S2"].display_metadata.is_placeholder


def test_missing_and_malformed_sales_are_dropped():
    ledger = InMemoryLedger()
    add_direct_sale(ledger, "S1", cap_id="cap-1")
    ledger.add_object("S-bad", "0x3e0a::template::Sale", {"total_supply": "10"})
    for sale_id in ("S1", "S-bad", "S-gone"):
        ledger.emit_event(SALE_STARTED, {"sale_id": sale_id})

    entries = asyncio.run(_builder(ledger).list_sales())

    assert [entry.sale.object_id for entry in entries] == ["S1"]


def test_discovery_transport_failure_propagates():
    ledger = InMemoryLedger()
    ledger.fail("query_events", LedgerTransportError("node down"))

    with pytest.raises(LedgerTransportError):
        asyncio.run(_builder(ledger).list_sales())


def test_empty_event_log_yields_empty_catalog():
    ledger = InMemoryLedger()

    assert asyncio.run(_builder(ledger).list_sales()) == []
    assert ledger.calls["multi_get_objects"] == 0


def test_sale_detail_mixes_generations():
    ledger = InMemoryLedger()
    add_vault_sale(ledger, "V1", coin=GOLD, treasury_id="treasury-1", payload={"name": "Gold", "symbol": "GLD"})
    ledger.total_supplies[GOLD] = 7
    add_direct_sale(ledger, "S1", cap_id="cap-1", previous_transaction="tx-1")
    ledger.add_transaction("tx-1", created=[("meta-5", asset_metadata_type())])
    add_metadata(ledger, "meta-5")
    builder = _builder(ledger)

    vault = asyncio.run(builder.sale_detail("V1"))
    direct = asyncio.run(builder.sale_detail("S1"))

    assert vault.supply.circulating == 7
    assert vault.metadata.source == "embedded_payload"
    assert direct.metadata.source == "sale_creation_tx"
    assert asyncio.run(builder.sale_detail("missing")) is None


def test_out_of_range_metadata_bytes_degrade_only_that_entry():
    ledger = InMemoryLedger()
    ledger.add_object("meta-bad", asset_metadata_type(), {"name": [300, 1], "symbol": "X"})
    add_metadata(ledger, "meta-2", name="Irises", symbol="IRS")
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-bad")
    add_direct_sale(ledger, "S2", cap_id="cap-2", meta_id="meta-2")
    ledger.emit_event(SALE_STARTED, {"sale_id": "S1"})
    ledger.emit_event(SALE_STARTED, {"sale_id": "S2"})

    entries = asyncio.run(_builder(ledger).list_sales())
    by_id = {entry.sale.object_id: entry for entry in entries}

    assert set(by_id) == {"S1", "S2"}
    assert by_id["S1"].status == "partial"
    assert by_id["S1"].display_metadata.is_placeholder
    assert by_id["S2"].display_metadata.name == "Irises"


def test_load_sales_parses_records_without_derived_reads():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1")
    add_direct_sale(ledger, "S1", cap_id="cap-1", meta_id="meta-1")
    add_direct_sale(ledger, "S2", cap_id="cap-2")
    for sale_id in ("S2", "S1", "S2"):
        ledger.emit_event(SALE_STARTED, {"sale_id": sale_id})

    sales = asyncio.run(_builder(ledger).load_sales())

    assert [sale.object_id for sale in sales] == ["S2", "S1"]
    assert ledger.calls["get_object"] == 0
    assert ledger.calls["get_total_supply"] == 0
    assert ledger.calls["query_transactions"] == 0
