"""Reader protocol and value types shared by every ledger adapter.

The reconciliation layer only talks to ``LedgerReader``. Concrete adapters
(JSON-RPC, in-memory) translate their native payloads into the frozen value
types below so that resolution code never touches transport-specific shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence


@dataclass(frozen=True)
class LedgerObject:
    """A versioned, identifier-addressed ledger object."""

    object_id: str
    type_tag: str | None
    fields: Mapping[str, Any] = field(default_factory=dict)
    previous_transaction: str | None = None
    owner: Any = None
    version: str | None = None


@dataclass(frozen=True)
class ObjectChange:
    """One entry of a transaction's object-change list."""

    kind: str
    object_id: str
    object_type: str | None = None


@dataclass(frozen=True)
class TransactionEffects:
    """Recorded object changes of a single transaction."""

    digest: str
    changes: tuple[ObjectChange, ...] = field(default_factory=tuple)

    @property
    def created(self) -> tuple[ObjectChange, ...]:
        return tuple(change for change in self.changes if change.kind == "created")

    @property
    def mutated(self) -> tuple[ObjectChange, ...]:
        return tuple(change for change in self.changes if change.kind == "mutated")

    def created_ids(self) -> set[str]:
        return {change.object_id for change in self.created}

    def touched_ids(self) -> set[str]:
        """Identifiers that were created or mutated by this transaction."""

        return {change.object_id for change in (*self.created, *self.mutated)}


@dataclass(frozen=True)
class LedgerEvent:
    """An entry of the append-only event stream."""

    event_type: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    tx_digest: str | None = None
    event_seq: str | None = None
    timestamp_ms: int | None = None


@dataclass(frozen=True)
class CoinMetadata:
    """Registered descriptive metadata of a fungible unit type."""

    object_id: str | None
    decimals: int
    name: str | None = None
    symbol: str | None = None
    description: str | None = None
    icon_url: str | None = None


@dataclass(frozen=True)
class MoveFunction:
    """Entry-point filter for transaction history scans."""

    package: str
    module: str
    function: str

    @property
    def target(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"


class LedgerReader(Protocol):
    """Read-only ledger capability consumed by the reconciliation layer."""

    async def get_object(self, object_id: str) -> LedgerObject | None:
        ...

    async def multi_get_objects(self, object_ids: Sequence[str]) -> list[LedgerObject | None]:
        ...

    async def get_owned_objects(self, owner: str, *, struct_type: str | None = None) -> list[LedgerObject]:
        ...

    async def query_events(
        self,
        event_type: str,
        *,
        descending: bool = True,
        limit: int = 100,
    ) -> list[LedgerEvent]:
        ...

    async def get_transaction(self, digest: str) -> TransactionEffects | None:
        ...

    async def query_transactions(
        self,
        *,
        changed_object: str | None = None,
        move_function: MoveFunction | None = None,
        limit: int = 50,
    ) -> list[TransactionEffects]:
        ...

    async def get_total_supply(self, coin_type: str) -> int | None:
        ...

    async def get_coin_metadata(self, coin_type: str) -> CoinMetadata | None:
        ...

    async def aclose(self) -> None:
        ...


__all__ = [
    "CoinMetadata",
    "LedgerEvent",
    "LedgerObject",
    "LedgerReader",
    "MoveFunction",
    "ObjectChange",
    "TransactionEffects",
]
