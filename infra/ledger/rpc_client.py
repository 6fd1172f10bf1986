"""JSON-RPC ledger reader built on httpx for production usage."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Mapping, Sequence

import httpx

from .errors import LedgerClientError, LedgerRPCError, LedgerRateLimitError, LedgerTransportError
from .protocols import CoinMetadata, LedgerEvent, LedgerObject, MoveFunction, ObjectChange, TransactionEffects

LOGGER = logging.getLogger(__name__)

OBJECT_OPTIONS: Dict[str, bool] = {
    "showType": True,
    "showContent": True,
    "showOwner": True,
    "showPreviousTransaction": True,
}
TRANSACTION_OPTIONS: Dict[str, bool] = {"showObjectChanges": True}
MULTI_GET_CHUNK = 50


class LedgerRPCClient:
    """Async JSON-RPC client exposing the ``LedgerReader`` surface."""

    DEFAULT_URL = "https://fullnode.testnet.sui.io:443"

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        backoff_initial: float = 1.0,
        backoff_multiplier: float = 2.0,
        backoff_max: float = 30.0,
        page_size: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = (rpc_url or self.DEFAULT_URL).rstrip("/")
        self.max_retries = max(0, int(max_retries))
        self.backoff_initial = float(backoff_initial)
        self.backoff_multiplier = float(backoff_multiplier)
        self.backoff_max = float(backoff_max)
        self.page_size = max(1, int(page_size))
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "LedgerRPCClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_object(self, object_id: str) -> LedgerObject | None:
        result = await self._call("sui_getObject", [object_id, OBJECT_OPTIONS])
        return _parse_object_response(result)

    async def multi_get_objects(self, object_ids: Sequence[str]) -> list[LedgerObject | None]:
        ids = [str(object_id) for object_id in object_ids]
        resolved: list[LedgerObject | None] = []
        for start in range(0, len(ids), MULTI_GET_CHUNK):
            chunk = ids[start : start + MULTI_GET_CHUNK]
            result = await self._call("sui_multiGetObjects", [chunk, OBJECT_OPTIONS])
            entries = result if isinstance(result, list) else []
            if len(entries) != len(chunk):
                raise LedgerRPCError(
                    f"sui_multiGetObjects returned {len(entries)} entries for {len(chunk)} ids",
                    method="sui_multiGetObjects",
                )
            resolved.extend(_parse_object_response(entry) for entry in entries)
        return resolved

    async def get_owned_objects(self, owner: str, *, struct_type: str | None = None) -> list[LedgerObject]:
        query: Dict[str, Any] = {"options": OBJECT_OPTIONS}
        if struct_type:
            query["filter"] = {"StructType": struct_type}
        cursor: str | None = None
        collected: list[LedgerObject] = []
        while True:
            page = await self._call("suix_getOwnedObjects", [owner, query, cursor, self.page_size])
            for entry in _page_items(page):
                parsed = _parse_object_response(entry)
                if parsed is not None:
                    collected.append(parsed)
            cursor = page.get("nextCursor") if isinstance(page, Mapping) else None
            if not (isinstance(page, Mapping) and page.get("hasNextPage") and cursor):
                break
        return collected

    async def query_events(
        self,
        event_type: str,
        *,
        descending: bool = True,
        limit: int = 100,
    ) -> list[LedgerEvent]:
        page = await self._call("suix_queryEvents", [{"MoveEventType": event_type}, None, int(limit), descending])
        return [_parse_event(entry) for entry in _page_items(page)]

    async def get_transaction(self, digest: str) -> TransactionEffects | None:
        try:
            result = await self._call("sui_getTransactionBlock", [digest, TRANSACTION_OPTIONS])
        except LedgerRPCError as exc:
            LOGGER.debug("Transaction %s unavailable: %s", digest, exc)
            return None
        if not isinstance(result, Mapping):
            return None
        return _parse_transaction(result)

    async def query_transactions(
        self,
        *,
        changed_object: str | None = None,
        move_function: MoveFunction | None = None,
        limit: int = 50,
    ) -> list[TransactionEffects]:
        if (changed_object is None) == (move_function is None):
            raise ValueError("exactly one of changed_object or move_function must be provided")
        if changed_object is not None:
            tx_filter: Dict[str, Any] = {"ChangedObject": changed_object}
        else:
            tx_filter = {
                "MoveFunction": {
                    "package": move_function.package,
                    "module": move_function.module,
                    "function": move_function.function,
                }
            }
        query = {"filter": tx_filter, "options": TRANSACTION_OPTIONS}
        page = await self._call("suix_queryTransactionBlocks", [query, None, int(limit), True])
        return [_parse_transaction(entry) for entry in _page_items(page) if isinstance(entry, Mapping)]

    async def get_total_supply(self, coin_type: str) -> int | None:
        try:
            result = await self._call("suix_getTotalSupply", [coin_type])
        except LedgerRPCError as exc:
            LOGGER.debug("Total supply unavailable for %s: %s", coin_type, exc)
            return None
        if not isinstance(result, Mapping) or result.get("value") is None:
            return None
        try:
            return int(result["value"])
        except (TypeError, ValueError):
            return None

    async def get_coin_metadata(self, coin_type: str) -> CoinMetadata | None:
        try:
            result = await self._call("suix_getCoinMetadata", [coin_type])
        except LedgerRPCError as exc:
            LOGGER.debug("Coin metadata unavailable for %s: %s", coin_type, exc)
            return None
        if not isinstance(result, Mapping):
            return None
        try:
            decimals = int(result.get("decimals", 0))
        except (TypeError, ValueError):
            decimals = 0
        return CoinMetadata(
            object_id=result.get("id"),
            decimals=decimals,
            name=result.get("name"),
            symbol=result.get("symbol"),
            description=result.get("description"),
            icon_url=result.get("iconUrl"),
        )

    async def _call(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        backoff = self.backoff_initial
        attempt = 0
        while True:
            try:
                return await self._post(method, body)
            except LedgerRateLimitError as err:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = err.retry_after if err.retry_after is not None else backoff
                LOGGER.info("Rate limited on %s; retrying in %.1fs (attempt %d)", method, delay, attempt)
                await asyncio.sleep(delay)
                backoff = min(backoff * self.backoff_multiplier, self.backoff_max)

    async def _post(self, method: str, body: Mapping[str, Any]) -> Any:
        try:
            response = await self._client.post(self.rpc_url, json=body)
        except httpx.HTTPError as exc:
            raise LedgerTransportError(f"{method} request failed: {exc}") from exc
        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise LedgerRateLimitError(f"{method} rate limited by node", retry_after=retry_after)
        if response.status_code >= 400:
            raise LedgerTransportError(
                f"{method} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerTransportError(f"{method} returned a non-JSON body") from exc
        if not isinstance(payload, Mapping):
            raise LedgerTransportError(f"{method} returned an unexpected envelope")
        error = payload.get("error")
        if error:
            code = error.get("code") if isinstance(error, Mapping) else None
            message = error.get("message") if isinstance(error, Mapping) else str(error)
            raise LedgerRPCError(f"{method}: {message}", code=code, method=method)
        return payload.get("result")


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _page_items(page: Any) -> list[Any]:
    if isinstance(page, Mapping):
        items = page.get("data") or []
    elif isinstance(page, list):
        items = page
    else:
        items = []
    return list(items)


def _parse_object_response(entry: Any) -> LedgerObject | None:
    if not isinstance(entry, Mapping):
        return None
    if entry.get("error") and not entry.get("data"):
        return None
    data = entry.get("data", entry)
    if not isinstance(data, Mapping) or not data.get("objectId"):
        return None
    content = data.get("content")
    fields: Mapping[str, Any] = {}
    type_tag = data.get("type")
    if isinstance(content, Mapping):
        raw_fields = content.get("fields")
        if isinstance(raw_fields, Mapping):
            fields = dict(raw_fields)
        type_tag = type_tag or content.get("type")
    return LedgerObject(
        object_id=str(data["objectId"]),
        type_tag=type_tag,
        fields=fields,
        previous_transaction=data.get("previousTransaction"),
        owner=data.get("owner"),
        version=str(data["version"]) if data.get("version") is not None else None,
    )


def _parse_event(entry: Any) -> LedgerEvent:
    if not isinstance(entry, Mapping):
        raise LedgerClientError("event entry is not a mapping")
    identifier = entry.get("id") or {}
    timestamp = entry.get("timestampMs")
    parsed = entry.get("parsedJson")
    return LedgerEvent(
        event_type=str(entry.get("type", "")),
        payload=dict(parsed) if isinstance(parsed, Mapping) else {},
        tx_digest=identifier.get("txDigest") if isinstance(identifier, Mapping) else None,
        event_seq=identifier.get("eventSeq") if isinstance(identifier, Mapping) else None,
        timestamp_ms=int(timestamp) if timestamp is not None else None,
    )


def _parse_transaction(entry: Mapping[str, Any]) -> TransactionEffects:
    changes = []
    for change in entry.get("objectChanges") or []:
        if not isinstance(change, Mapping) or not change.get("objectId"):
            continue
        changes.append(
            ObjectChange(
                kind=str(change.get("type", "")),
                object_id=str(change["objectId"]),
                object_type=change.get("objectType"),
            )
        )
    return TransactionEffects(digest=str(entry.get("digest", "")), changes=tuple(changes))


__all__ = ["LedgerRPCClient"]
