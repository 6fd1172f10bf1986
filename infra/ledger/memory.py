"""Synthetic in-memory ledger implementing ``LedgerReader``.

Used by tests and offline demos. Every read is counted per method so callers
can assert which fallback strategies ran, and failures can be injected per
method (optionally per key) to exercise degrade-to-placeholder paths.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .protocols import CoinMetadata, LedgerEvent, LedgerObject, MoveFunction, ObjectChange, TransactionEffects


@dataclass
class _RecordedTransaction:
    effects: TransactionEffects
    move_function: MoveFunction | None = None


@dataclass
class InMemoryLedger:
    """Dictionary-backed ledger with deterministic recency ordering."""

    objects: Dict[str, LedgerObject] = field(default_factory=dict)
    owners: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))
    events: List[LedgerEvent] = field(default_factory=list)
    transactions: List[_RecordedTransaction] = field(default_factory=list)
    total_supplies: Dict[str, int] = field(default_factory=dict)
    coin_metadata: Dict[str, CoinMetadata] = field(default_factory=dict)
    calls: Counter = field(default_factory=Counter)
    _failures: Dict[Tuple[str, str | None], Exception] = field(default_factory=dict)

    # ------------------------------------------------------------------ builders

    def add_object(
        self,
        object_id: str,
        type_tag: str | None,
        fields: Mapping[str, Any] | None = None,
        *,
        previous_transaction: str | None = None,
        owner: str | None = None,
    ) -> LedgerObject:
        obj = LedgerObject(
            object_id=object_id,
            type_tag=type_tag,
            fields=dict(fields or {}),
            previous_transaction=previous_transaction,
            owner={"AddressOwner": owner} if owner else None,
        )
        self.objects[object_id] = obj
        if owner:
            self.owners[owner].append(object_id)
        return obj

    def touch_object(self, object_id: str, previous_transaction: str) -> None:
        """Point an existing object's provenance at a later transaction."""

        self.objects[object_id] = replace(self.objects[object_id], previous_transaction=previous_transaction)

    def add_transaction(
        self,
        digest: str,
        *,
        created: Iterable[Tuple[str, str | None]] = (),
        mutated: Iterable[Tuple[str, str | None]] = (),
        move_function: MoveFunction | None = None,
    ) -> TransactionEffects:
        changes = [ObjectChange("created", object_id, object_type) for object_id, object_type in created]
        changes.extend(ObjectChange("mutated", object_id, object_type) for object_id, object_type in mutated)
        effects = TransactionEffects(digest=digest, changes=tuple(changes))
        self.transactions.append(_RecordedTransaction(effects=effects, move_function=move_function))
        return effects

    def emit_event(self, event_type: str, payload: Mapping[str, Any], *, tx_digest: str | None = None) -> None:
        self.events.append(LedgerEvent(event_type=event_type, payload=dict(payload), tx_digest=tx_digest))

    def fail(self, method: str, error: Exception, *, key: str | None = None) -> None:
        """Make ``method`` raise ``error`` (for every call, or only for ``key``)."""

        self._failures[(method, key)] = error

    # ------------------------------------------------------------------ reader

    def _enter(self, method: str, key: str | None = None) -> None:
        self.calls[method] += 1
        error = self._failures.get((method, key)) or self._failures.get((method, None))
        if error is not None:
            raise error

    async def get_object(self, object_id: str) -> LedgerObject | None:
        self._enter("get_object", object_id)
        return self.objects.get(object_id)

    async def multi_get_objects(self, object_ids: Sequence[str]) -> list[LedgerObject | None]:
        self._enter("multi_get_objects")
        return [self.objects.get(object_id) for object_id in object_ids]

    async def get_owned_objects(self, owner: str, *, struct_type: str | None = None) -> list[LedgerObject]:
        self._enter("get_owned_objects", owner)
        owned = [self.objects[object_id] for object_id in self.owners.get(owner, []) if object_id in self.objects]
        if struct_type:
            owned = [obj for obj in owned if obj.type_tag == struct_type]
        return owned

    async def query_events(
        self,
        event_type: str,
        *,
        descending: bool = True,
        limit: int = 100,
    ) -> list[LedgerEvent]:
        self._enter("query_events", event_type)
        matching = [event for event in self.events if event.event_type == event_type]
        if descending:
            matching.reverse()
        return matching[:limit]

    async def get_transaction(self, digest: str) -> TransactionEffects | None:
        self._enter("get_transaction", digest)
        for recorded in self.transactions:
            if recorded.effects.digest == digest:
                return recorded.effects
        return None

    async def query_transactions(
        self,
        *,
        changed_object: str | None = None,
        move_function: MoveFunction | None = None,
        limit: int = 50,
    ) -> list[TransactionEffects]:
        if (changed_object is None) == (move_function is None):
            raise ValueError("exactly one of changed_object or move_function must be provided")
        self._enter("query_transactions", changed_object or move_function.target)
        matches: list[TransactionEffects] = []
        for recorded in reversed(self.transactions):
            if changed_object is not None and changed_object in recorded.effects.touched_ids():
                matches.append(recorded.effects)
            elif move_function is not None and recorded.move_function == move_function:
                matches.append(recorded.effects)
        return matches[:limit]

    async def get_total_supply(self, coin_type: str) -> int | None:
        self._enter("get_total_supply", coin_type)
        return self.total_supplies.get(coin_type)

    async def get_coin_metadata(self, coin_type: str) -> CoinMetadata | None:
        self._enter("get_coin_metadata", coin_type)
        return self.coin_metadata.get(coin_type)

    async def aclose(self) -> None:
        return None


__all__ = ["InMemoryLedger"]
