"""Ledger and reconciliation configuration loader."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from infra.ledger.protocols import MoveFunction
from infra.ledger.rpc_client import LedgerRPCClient
from infra.paths import default_config_path

DEFAULT_TEMPLATE_PACKAGE = "0x3e0a52f03c5a95059bf4dde161b31b65cfed1f61ff3824a006e2961bb04f528a"
DEFAULT_TEMPLATE_MODULE = "template"


@dataclass(frozen=True)
class RPCConfig:
    """Transport knobs for the JSON-RPC reader."""

    url: str = LedgerRPCClient.DEFAULT_URL
    timeout_s: float = 30.0
    max_retries: int = 2
    backoff_initial: float = 1.0
    backoff_multiplier: float = 2.0
    backoff_max: float = 30.0
    page_size: int = 50


@dataclass(frozen=True)
class PackageConfig:
    """Published package coordinates the sales are discovered under."""

    template_package: str = DEFAULT_TEMPLATE_PACKAGE
    template_module: str = DEFAULT_TEMPLATE_MODULE
    sale_started_event_override: str | None = None
    purchase_event_override: str | None = None
    purchase_function_name: str = "buy"

    @property
    def sale_started_event(self) -> str:
        if self.sale_started_event_override:
            return self.sale_started_event_override
        return f"{self.template_package}::{self.template_module}::SaleStarted"

    @property
    def purchase_event(self) -> str:
        if self.purchase_event_override:
            return self.purchase_event_override
        return f"{self.template_package}::{self.template_module}::UnitsPurchased"

    @property
    def purchase_function(self) -> MoveFunction:
        return MoveFunction(self.template_package, self.template_module, self.purchase_function_name)


@dataclass(frozen=True)
class ScanLimits:
    """Bounded page sizes for event and transaction-history scans."""

    event_limit: int = 100
    history_scan_limit: int = 50
    purchase_event_limit: int = 100
    purchase_scan_limit: int = 100


@dataclass(frozen=True)
class DisplayConfig:
    """Fixed-point convention for the payment currency."""

    payment_decimals: int = 6
    currency_symbol: str = "$"


@dataclass(frozen=True)
class LedgerConfig:
    """Top-level configuration surface."""

    rpc: RPCConfig = field(default_factory=RPCConfig)
    packages: PackageConfig = field(default_factory=PackageConfig)
    limits: ScanLimits = field(default_factory=ScanLimits)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    concurrency: int = 8

    def build_rpc_client(self) -> LedgerRPCClient:
        return LedgerRPCClient(
            self.rpc.url,
            timeout=self.rpc.timeout_s,
            max_retries=self.rpc.max_retries,
            backoff_initial=self.rpc.backoff_initial,
            backoff_multiplier=self.rpc.backoff_multiplier,
            backoff_max=self.rpc.backoff_max,
            page_size=self.rpc.page_size,
        )


def _load_mapping(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yml", ".yaml"}:
        payload = yaml.safe_load(text) or {}
    else:
        payload = json.loads(text)
    if not isinstance(payload, Mapping):
        raise ValueError("Ledger config must map keys to values.")
    return payload


def _block(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key) or {}
    if not isinstance(value, Mapping):
        raise TypeError(f"'{key}' configuration block must be a mapping")
    return value


def config_from_mapping(payload: Mapping[str, Any]) -> LedgerConfig:
    """Build a ``LedgerConfig`` from a decoded mapping, applying env overrides."""

    rpc_block = _block(payload, "rpc")
    packages_block = _block(payload, "packages")
    limits_block = _block(payload, "limits")
    display_block = _block(payload, "display")
    events_block = _block(packages_block, "events")

    rpc_url = os.environ.get("SALESCOPE_RPC_URL") or rpc_block.get("url") or RPCConfig.url
    rpc = RPCConfig(
        url=str(rpc_url),
        timeout_s=float(rpc_block.get("timeout_s", RPCConfig.timeout_s)),
        max_retries=int(rpc_block.get("max_retries", RPCConfig.max_retries)),
        backoff_initial=float(rpc_block.get("backoff_initial", RPCConfig.backoff_initial)),
        backoff_multiplier=float(rpc_block.get("backoff_multiplier", RPCConfig.backoff_multiplier)),
        backoff_max=float(rpc_block.get("backoff_max", RPCConfig.backoff_max)),
        page_size=int(rpc_block.get("page_size", RPCConfig.page_size)),
    )
    packages = PackageConfig(
        template_package=str(packages_block.get("template_package", PackageConfig.template_package)),
        template_module=str(packages_block.get("template_module", PackageConfig.template_module)),
        sale_started_event_override=events_block.get("sale_started"),
        purchase_event_override=events_block.get("units_purchased"),
        purchase_function_name=str(packages_block.get("purchase_function", PackageConfig.purchase_function_name)),
    )
    limits = ScanLimits(
        event_limit=int(limits_block.get("event_limit", ScanLimits.event_limit)),
        history_scan_limit=int(limits_block.get("history_scan_limit", ScanLimits.history_scan_limit)),
        purchase_event_limit=int(limits_block.get("purchase_event_limit", ScanLimits.purchase_event_limit)),
        purchase_scan_limit=int(limits_block.get("purchase_scan_limit", ScanLimits.purchase_scan_limit)),
    )
    display = DisplayConfig(
        payment_decimals=int(display_block.get("payment_decimals", DisplayConfig.payment_decimals)),
        currency_symbol=str(display_block.get("currency_symbol", DisplayConfig.currency_symbol)),
    )
    concurrency = int(payload.get("concurrency", LedgerConfig.concurrency))
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    return LedgerConfig(rpc=rpc, packages=packages, limits=limits, display=display, concurrency=concurrency)


def load_config(path: Path | str | None = None) -> LedgerConfig:
    """Load ledger configuration from disk; defaults apply when no file exists."""

    config_path = Path(path) if path else default_config_path()
    if not config_path.exists():
        if path:
            raise FileNotFoundError(f"Ledger configuration not found at {config_path}")
        return config_from_mapping({})
    return config_from_mapping(_load_mapping(config_path))


__all__ = [
    "DisplayConfig",
    "LedgerConfig",
    "PackageConfig",
    "RPCConfig",
    "ScanLimits",
    "config_from_mapping",
    "load_config",
]
