from __future__ import annotations

import json

import pytest

from infra.ledger import InMemoryLedger, LedgerTransportError, MoveFunction
from scripts import link_purchases, list_sales, show_holdings, show_sale
from tests.reconciliation.ledger_fixtures import (
    SALE_STARTED,
    TEMPLATE,
    add_direct_sale,
    add_metadata,
    add_receipt,
    cap_type,
    tokenized_asset_type,
)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv("SALESCOPE_RPC_URL", raising=False)
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps({"packages": {"template_package": TEMPLATE}}), encoding="utf-8")
    return path


@pytest.fixture
def ledger():
    ledger = InMemoryLedger()
    add_metadata(ledger, "meta-1")
    add_direct_sale(ledger, "S1", cap_id="cap-1", issued=3, meta_id="meta-1")
    add_direct_sale(ledger, "S2", cap_id="cap-2")
    ledger.emit_event(SALE_STARTED, {"sale_id": "S2"})
    ledger.emit_event(SALE_STARTED, {"sale_id": "S1"})
    ledger.add_transaction(
        "tx-buy",
        created=[("r1", tokenized_asset_type())],
        mutated=[("cap-1", cap_type())],
        move_function=MoveFunction(TEMPLATE, "template", "buy"),
    )
    add_receipt(ledger, "r1", owner="0xbuyer", balance=3, previous_transaction="tx-buy")
    return ledger


def _use_ledger(monkeypatch, module, ledger):
    monkeypatch.setattr(module, "build_reader", lambda config: ledger)


def test_list_sales_prints_summary_and_exports_csv(tmp_path, config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, list_sales, ledger)
    csv_path = tmp_path / "out" / "sales.csv"

    exit_code = list_sales.main(["--config", str(config_path), "--csv", str(csv_path)])

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["status"] == "succeeded"
    assert [sale["sale_id"] for sale in summary["sales"]] == ["S1", "S2"]
    assert summary["partial_count"] == 1
    assert summary["csv_path"] == str(csv_path)
    assert csv_path.exists()


def test_list_sales_transport_failure_exits_non_zero(config_path, monkeypatch, capsys):
    broken = InMemoryLedger()
    broken.fail("query_events", LedgerTransportError("node down"))
    _use_ledger(monkeypatch, list_sales, broken)

    exit_code = list_sales.main(["--config", str(config_path)])

    assert exit_code == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["status"] == "failed"
    assert summary["error_type"] == "LedgerTransportError"


def test_show_sale_quotes_purchase(config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, show_sale, ledger)

    exit_code = show_sale.main(["--config", str(config_path), "--sale-id", "S1", "--amount", "3"])

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["sale"]["name"] == "Sunflowers"
    assert summary["sale"]["price_display"] == "$0.00005"
    assert summary["quote"]["cost"] == 150
    assert summary["quote"]["exceeds_remaining"] is False


def test_show_sale_unknown_id_is_not_found(config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, show_sale, ledger)

    exit_code = show_sale.main(["--config", str(config_path), "--sale-id", "missing"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["status"] == "not_found"


def test_show_holdings_counts_attributed_receipts(config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, show_holdings, ledger)

    exit_code = show_holdings.main(["--config", str(config_path), "--account", "0xbuyer", "--sale-id", "S1"])

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["units"] == 3
    assert summary["receipts"][0]["attributed_by"] == "authority"


def test_link_purchases_groups_by_sale(config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, link_purchases, ledger)

    exit_code = link_purchases.main(["--config", str(config_path)])

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["transaction_count"] == 1
    assert summary["links"]["S1"][0]["matched_by"] == "authority"


def test_relative_csv_path_lands_under_exports_root(tmp_path, config_path, ledger, monkeypatch, capsys):
    data_root = tmp_path / "data"
    monkeypatch.setenv("SALESCOPE_DATA_ROOT", str(data_root))
    _use_ledger(monkeypatch, list_sales, ledger)

    exit_code = list_sales.main(["--config", str(config_path), "--csv", "sales.csv"])

    assert exit_code == 0
    expected = data_root / "exports" / "sales.csv"
    assert json.loads(capsys.readouterr().out)["csv_path"] == str(expected)
    assert expected.exists()


def test_link_purchases_skips_metadata_and_supply_reads(config_path, ledger, monkeypatch, capsys):
    _use_ledger(monkeypatch, link_purchases, ledger)

    exit_code = link_purchases.main(["--config", str(config_path)])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["links"]["S1"][0]["created_receipts"] == ["r1"]
    assert ledger.calls["get_object"] == 0
    assert ledger.calls["get_total_supply"] == 0
