"""Ledger reader adapters (JSON-RPC and in-memory) and their shared types."""

from .errors import LedgerClientError, LedgerRPCError, LedgerRateLimitError, LedgerTransportError
from .memory import InMemoryLedger
from .protocols import (
    CoinMetadata,
    LedgerEvent,
    LedgerObject,
    LedgerReader,
    MoveFunction,
    ObjectChange,
    TransactionEffects,
)
from .rpc_client import LedgerRPCClient

__all__ = [
    "CoinMetadata",
    "InMemoryLedger",
    "LedgerClientError",
    "LedgerEvent",
    "LedgerObject",
    "LedgerRPCClient",
    "LedgerRPCError",
    "LedgerRateLimitError",
    "LedgerReader",
    "LedgerTransportError",
    "MoveFunction",
    "ObjectChange",
    "TransactionEffects",
]
