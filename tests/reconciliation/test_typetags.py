from __future__ import annotations

import pytest

from reconciliation.errors import MalformedRecordError
from reconciliation.typetags import (
    generic_params,
    inner_param,
    matches_generic_suffix,
    module_path,
    normalize_type_tag,
    same_type,
    struct_name,
)


def test_normalize_strips_leading_zeros_and_case():
    assert normalize_type_tag("0x0002::coin::Coin<0xABC::x::X>") == "0x2::coin::Coin<0xabc::x::X>"
    assert same_type("0x02::coin::Coin<0x1::a::A>", "0x2::coin::Coin<0x0001::a::A>")
    assert not same_type(None, "0x2::coin::Coin")


def test_generic_params_respects_nesting():
    tag = "0x1::pair::Pair<0x2::coin::Coin<0x3::a::A>, 0x4::b::B>"

    assert generic_params(tag) == ["0x2::coin::Coin<0x3::a::A>", "0x4::b::B"]
    assert inner_param(tag, "Pair") == "0x2::coin::Coin<0x3::a::A>"
    assert struct_name(tag) == "Pair"
    assert module_path(tag) == "0x1::pair"


@pytest.mark.parametrize("tag", ["0x1::a::A<0x2::b::B", "0x1::a::A<0x2::b::B>>"])
def test_unbalanced_generics_are_malformed(tag):
    with pytest.raises(MalformedRecordError):
        generic_params(tag)


def test_inner_param_checks_struct_and_presence():
    with pytest.raises(MalformedRecordError):
        inner_param("0x1::a::AssetCap<0x2::b::B>", "Vault")
    with pytest.raises(MalformedRecordError):
        inner_param("0x1::a::Plain")
    with pytest.raises(MalformedRecordError):
        module_path("Plain<0x1::a::A>")


def test_matches_generic_suffix_ignores_package_address():
    assert matches_generic_suffix("0xdead::m::AssetMetadata<0x1::a::A>", "AssetMetadata<", "0x01::a::A")
    assert not matches_generic_suffix("0xdead::m::AssetMetadata<0x1::a::B>", "AssetMetadata<", "0x1::a::A")
    assert not matches_generic_suffix(None, "AssetMetadata<", "0x1::a::A")
