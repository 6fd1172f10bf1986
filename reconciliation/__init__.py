"""Derived views over on-ledger sale records: metadata, supply, catalog and holdings."""

from reconciliation.catalog import CatalogEntry, SaleCatalogBuilder, extract_sale_ids
from reconciliation.errors import MalformedRecordError
from reconciliation.holdings import HoldingsAggregator, ReceiptHolding
from reconciliation.linking import PurchaseLink, PurchaseLinker
from reconciliation.metadata import MetadataResolver
from reconciliation.pricing import PurchaseQuote, format_amount, price_per_unit, quote_purchase
from reconciliation.results import Resolution
from reconciliation.schema import (
    IssuanceAuthority,
    MetadataRecord,
    SaleRecord,
    SchemaGeneration,
    classify,
    parse_sale_record,
)
from reconciliation.service import HoldingsReport, SaleReconciler
from reconciliation.supply import SupplyCalculator, SupplyFigure

__all__ = [
    "CatalogEntry",
    "HoldingsAggregator",
    "HoldingsReport",
    "IssuanceAuthority",
    "MalformedRecordError",
    "MetadataRecord",
    "MetadataResolver",
    "PurchaseLink",
    "PurchaseLinker",
    "PurchaseQuote",
    "ReceiptHolding",
    "Resolution",
    "SaleCatalogBuilder",
    "SaleReconciler",
    "SaleRecord",
    "SchemaGeneration",
    "SupplyCalculator",
    "SupplyFigure",
    "classify",
    "extract_sale_ids",
    "format_amount",
    "parse_sale_record",
    "price_per_unit",
    "quote_purchase",
]
