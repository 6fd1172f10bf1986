"""Sale and metadata records, and the schema-generation classifier.

Sale objects have gone through three historical shapes. None of them carries
a version field, so the generation is inferred per record from its type
signature and field layout:

* ``DIRECT_ASSET``: ``Sale`` embeds an ``AssetCap<T>`` by value; receipts are
  ``TokenizedAsset<T>`` objects carrying their own ``balance``.
* ``VAULT``: ``Vault<C>`` bundles a descriptive payload with total supply and
  price and references a standalone treasury; receipts are ``Coin<C>``.
* ``VAULT_COIN_METADATA``: ``Vault<C>`` without the payload; descriptive data
  and decimals live in the registered ``CoinMetadata<C>``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from infra.ledger.protocols import CoinMetadata, LedgerObject

from .errors import MalformedRecordError
from .pricing import price_per_unit
from .typetags import inner_param, matches_generic_suffix, module_path, normalize_type_tag, struct_name

COIN_MODULE = "0x2::coin"
PLACEHOLDER_NAME = "Unknown Asset"
PLACEHOLDER_SYMBOL = "UNK"
PLACEHOLDER_DESCRIPTION = "No description available"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x300?text=No+Image"

_TREASURY_KEYS = ("treasury_id", "treasury_cap_id", "treasury")
_META_KEYS = ("meta_id", "metadata_id")
_IMAGE_KEYS = ("icon_url", "image_url", "iconUrl", "url")


class SchemaGeneration(str, Enum):
    DIRECT_ASSET = "direct_asset"
    VAULT = "vault"
    VAULT_COIN_METADATA = "vault_coin_metadata"

    @property
    def uses_fungible_receipts(self) -> bool:
        return self is not SchemaGeneration.DIRECT_ASSET


@dataclass(frozen=True)
class MetadataRecord:
    """Descriptive data for the asset a sale represents."""

    object_id: str | None
    type_tag: str | None
    name: str
    symbol: str
    description: str
    image_url: str
    is_placeholder: bool = False

    @classmethod
    def from_fields(cls, object_id: str | None, type_tag: str | None, fields: Mapping[str, Any]) -> "MetadataRecord":
        name = _text(fields.get("name"))
        symbol = _text(fields.get("symbol"))
        if name is None and symbol is None:
            raise MalformedRecordError(f"object {object_id} carries no name or symbol")
        image = next((_text(fields.get(key)) for key in _IMAGE_KEYS if fields.get(key) is not None), None)
        return cls(
            object_id=object_id,
            type_tag=type_tag,
            name=name or PLACEHOLDER_NAME,
            symbol=symbol or PLACEHOLDER_SYMBOL,
            description=_text(fields.get("description")) or PLACEHOLDER_DESCRIPTION,
            image_url=image or PLACEHOLDER_IMAGE,
        )

    @classmethod
    def from_object(cls, obj: LedgerObject) -> "MetadataRecord":
        return cls.from_fields(obj.object_id, obj.type_tag, obj.fields)

    @classmethod
    def from_coin_metadata(cls, coin_type: str, metadata: CoinMetadata) -> "MetadataRecord":
        return cls.from_fields(
            metadata.object_id,
            f"{COIN_MODULE}::CoinMetadata<{coin_type}>",
            {
                "name": metadata.name,
                "symbol": metadata.symbol,
                "description": metadata.description,
                "icon_url": metadata.icon_url,
            },
        )

    @classmethod
    def placeholder(cls) -> "MetadataRecord":
        return cls(
            object_id=None,
            type_tag=None,
            name=PLACEHOLDER_NAME,
            symbol=PLACEHOLDER_SYMBOL,
            description=PLACEHOLDER_DESCRIPTION,
            image_url=PLACEHOLDER_IMAGE,
            is_placeholder=True,
        )


@dataclass(frozen=True)
class IssuanceAuthority:
    """Capability controlling how many receipt units have been minted."""

    object_id: str
    type_tag: str
    embedded: bool
    issued: int | None = None


@dataclass(frozen=True)
class SaleRecord:
    object_id: str
    type_tag: str
    generation: SchemaGeneration
    total_units: int
    total_price: int
    authority: IssuanceAuthority
    asset_type: str
    meta_id: str | None = None
    previous_transaction: str | None = None
    payload: MetadataRecord | None = None

    @property
    def price_per_unit(self) -> int:
        return price_per_unit(self.total_price, self.total_units)

    @property
    def metadata_type(self) -> str:
        if self.generation is SchemaGeneration.DIRECT_ASSET:
            return f"{module_path(self.authority.type_tag)}::AssetMetadata<{self.asset_type}>"
        return f"{COIN_MODULE}::CoinMetadata<{self.asset_type}>"

    @property
    def metadata_prefix(self) -> str:
        if self.generation is SchemaGeneration.DIRECT_ASSET:
            return "AssetMetadata<"
        return "CoinMetadata<"

    @property
    def receipt_type(self) -> str:
        """Exact receipt type for fungible generations, suffix for direct assets."""

        if self.generation is SchemaGeneration.DIRECT_ASSET:
            module_name = module_path(self.authority.type_tag).rsplit("::", 1)[-1]
            return f"::{module_name}::TokenizedAsset<{self.asset_type}>"
        return f"{COIN_MODULE}::Coin<{self.asset_type}>"

    def is_receipt(self, type_tag: str | None) -> bool:
        if not type_tag:
            return False
        if self.generation is SchemaGeneration.DIRECT_ASSET:
            # Receipt package address may differ from the cap's, so only the suffix is compared.
            return normalize_type_tag(type_tag).endswith(normalize_type_tag(self.receipt_type))
        return normalize_type_tag(type_tag) == normalize_type_tag(self.receipt_type)

    def is_metadata_type(self, type_tag: str | None, *, exact: bool = True) -> bool:
        if not type_tag:
            return False
        if exact:
            return normalize_type_tag(type_tag) == normalize_type_tag(self.metadata_type)
        return matches_generic_suffix(type_tag, self.metadata_prefix, self.asset_type)


def classify(obj: LedgerObject) -> SchemaGeneration:
    fields = obj.fields or {}
    cap = fields.get("cap")
    if isinstance(cap, Mapping) and "AssetCap<" in str(cap.get("type") or ""):
        return SchemaGeneration.DIRECT_ASSET
    is_vault = bool(obj.type_tag) and struct_name(obj.type_tag) == "Vault"
    if is_vault or any(key in fields for key in _TREASURY_KEYS):
        if _payload_fields(fields) is not None:
            return SchemaGeneration.VAULT
        return SchemaGeneration.VAULT_COIN_METADATA
    raise MalformedRecordError(f"object {obj.object_id} ({obj.type_tag}) matches no known sale shape")


def parse_sale_record(obj: LedgerObject) -> SaleRecord:
    """Interpret a raw ledger object as a sale; raises ``MalformedRecordError``."""

    if not obj.type_tag:
        raise MalformedRecordError(f"object {obj.object_id} has no type")
    generation = classify(obj)
    fields = obj.fields
    total_units = _optional_int(fields, "total_supply")
    total_price = _optional_int(fields, "total_price")
    meta_id = next((coerce_id(fields[key]) for key in _META_KEYS if fields.get(key)), None)

    if generation is SchemaGeneration.DIRECT_ASSET:
        cap = fields["cap"]
        cap_type = str(cap["type"])
        asset_type = inner_param(cap_type, "AssetCap")
        # metadata_type and receipt_type derive from this path; reject caps without one.
        module_path(cap_type)
        cap_fields = cap.get("fields") or {}
        supply = cap_fields.get("supply")
        authority = IssuanceAuthority(
            object_id=coerce_id(cap_fields.get("id")),
            type_tag=cap_type,
            embedded=True,
            issued=coerce_int(supply, "cap.supply") if supply is not None else None,
        )
        payload = None
    else:
        asset_type = inner_param(obj.type_tag)
        treasury_ref = next((fields[key] for key in _TREASURY_KEYS if fields.get(key)), None)
        if treasury_ref is None:
            raise MalformedRecordError(f"vault {obj.object_id} does not reference a treasury")
        authority = IssuanceAuthority(
            object_id=coerce_id(treasury_ref),
            type_tag=f"{COIN_MODULE}::TreasuryCap<{asset_type}>",
            embedded=False,
        )
        payload_fields = _payload_fields(fields)
        payload = (
            MetadataRecord.from_fields(obj.object_id, obj.type_tag, payload_fields)
            if payload_fields is not None
            else None
        )

    return SaleRecord(
        object_id=obj.object_id,
        type_tag=obj.type_tag,
        generation=generation,
        total_units=total_units,
        total_price=total_price,
        authority=authority,
        asset_type=asset_type,
        meta_id=meta_id,
        previous_transaction=obj.previous_transaction,
        payload=payload,
    )


def parse_balance(obj: LedgerObject) -> int:
    """Balance of a receipt object; raises ``MalformedRecordError`` when absent."""

    if "balance" not in obj.fields:
        raise MalformedRecordError(f"object {obj.object_id} has no balance field")
    return coerce_int(obj.fields["balance"], "balance")


def _payload_fields(fields: Mapping[str, Any]) -> Mapping[str, Any] | None:
    payload = fields.get("payload")
    if isinstance(payload, Mapping):
        inner = payload.get("fields")
        return inner if isinstance(inner, Mapping) else payload
    if "name" in fields or "symbol" in fields:
        return fields
    return None


def _optional_int(fields: Mapping[str, Any], key: str, default: int = 0) -> int:
    if fields.get(key) is None:
        return default
    return coerce_int(fields[key], key)


def coerce_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(f"{label} is a boolean, expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise MalformedRecordError(f"{label}={value!r} is not an integer") from exc
    if isinstance(value, Mapping):
        if "fields" in value and isinstance(value["fields"], Mapping):
            return coerce_int(value["fields"], label)
        if "value" in value:
            return coerce_int(value["value"], label)
    raise MalformedRecordError(f"{label}={value!r} is not an integer")


def coerce_id(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, Mapping):
        if "fields" in value and isinstance(value["fields"], Mapping):
            return coerce_id(value["fields"])
        if "id" in value:
            return coerce_id(value["id"])
        if "bytes" in value:
            return coerce_id(value["bytes"])
    raise MalformedRecordError(f"{value!r} is not an object identifier")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(item, int) for item in value):
        try:
            return bytes(value).decode("utf-8", errors="replace")
        except ValueError as exc:
            raise MalformedRecordError(f"{value!r} is not a byte string") from exc
    if isinstance(value, Mapping):
        inner = value.get("fields", value)
        if isinstance(inner, Mapping):
            for key in ("url", "bytes", "value"):
                if key in inner:
                    return _text(inner[key])
    return str(value)


__all__ = [
    "IssuanceAuthority",
    "MetadataRecord",
    "SaleRecord",
    "SchemaGeneration",
    "classify",
    "coerce_id",
    "coerce_int",
    "parse_balance",
    "parse_sale_record",
]
