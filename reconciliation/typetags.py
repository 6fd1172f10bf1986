"""Helpers for reading ``address::module::Name<Params>`` type signatures."""

from __future__ import annotations

import re

from .errors import MalformedRecordError

_ADDRESS_RE = re.compile(r"0x([0-9a-fA-F]+)")


def normalize_type_tag(type_tag: str) -> str:
    """Lower-case hex addresses and strip their leading zeros so tags compare equal."""

    def _short(match: re.Match[str]) -> str:
        digits = match.group(1).lower().lstrip("0")
        return f"0x{digits or '0'}"

    return _ADDRESS_RE.sub(_short, type_tag.replace(" ", ""))


def same_type(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return normalize_type_tag(left) == normalize_type_tag(right)


def strip_generics(type_tag: str) -> str:
    """``0x2::coin::Coin<X>`` -> ``0x2::coin::Coin``."""

    index = type_tag.find("<")
    return type_tag if index < 0 else type_tag[:index]


def struct_name(type_tag: str) -> str:
    return strip_generics(type_tag).rsplit("::", 1)[-1]


def module_path(type_tag: str) -> str:
    """``0xabc::tokenized_asset::AssetCap<X>`` -> ``0xabc::tokenized_asset``."""

    base = strip_generics(type_tag)
    if base.count("::") < 2:
        raise MalformedRecordError(f"type tag {type_tag!r} is not address::module::Name")
    return base.rsplit("::", 1)[0]


def generic_params(type_tag: str) -> list[str]:
    """Top-level type parameters of the outermost struct, respecting nesting."""

    start = type_tag.find("<")
    if start < 0:
        return []
    if not type_tag.endswith(">"):
        raise MalformedRecordError(f"unbalanced generics in {type_tag!r}")
    inner = type_tag[start + 1 : -1]
    params: list[str] = []
    depth = 0
    current: list[str] = []
    for char in inner:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
            if depth < 0:
                raise MalformedRecordError(f"unbalanced generics in {type_tag!r}")
        if char == "," and depth == 0:
            params.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    if depth != 0:
        raise MalformedRecordError(f"unbalanced generics in {type_tag!r}")
    tail = "".join(current).strip()
    if tail:
        params.append(tail)
    return params


def inner_param(type_tag: str, expected_struct: str | None = None) -> str:
    """First type parameter, optionally checking the outer struct name."""

    if expected_struct and struct_name(type_tag) != expected_struct:
        raise MalformedRecordError(f"expected {expected_struct}<...> but found {type_tag!r}")
    params = generic_params(type_tag)
    if not params:
        raise MalformedRecordError(f"type tag {type_tag!r} carries no type parameter")
    return params[0]


def matches_generic_suffix(type_tag: str | None, prefix: str, inner: str) -> bool:
    """Loose match: tag contains ``prefix`` and ends with ``<inner>``."""

    if not type_tag:
        return False
    normalized = normalize_type_tag(type_tag)
    return normalize_type_tag(prefix) in normalized and normalized.endswith(f"<{normalize_type_tag(inner)}>")


__all__ = [
    "generic_params",
    "inner_param",
    "matches_generic_suffix",
    "module_path",
    "normalize_type_tag",
    "same_type",
    "strip_generics",
    "struct_name",
]
