import re

import pytest

from gem_ownership.models import IdKind
from gem_ownership.services.identity import (
    IdentityResolver,
    djb2_hash,
    hash_suffix,
    split_composite,
    to_base36,
)


@pytest.fixture
def resolver():
    return IdentityResolver()


class TestDerive:
    def test_format(self, resolver):
        assert re.match(r"^BlackRock_Inc_[a-z0-9]{4}$", resolver.derive("BlackRock Inc"))

    def test_special_characters(self, resolver):
        assert resolver.derive("Company (Holdings) Ltd.").startswith("Company__Holdings__Ltd__")

    def test_deterministic(self, resolver):
        assert resolver.derive("Vanguard Group") == resolver.derive("Vanguard Group")
        assert resolver.derive("Vanguard Group") == IdentityResolver().derive("Vanguard Group")

    def test_punctuation_variants_differ(self, resolver):
        assert resolver.derive("ABC Corp") != resolver.derive("ABC Corp.")

    def test_case_variants_differ(self, resolver):
        assert resolver.derive("Acme Energy") != resolver.derive("ACME Energy")

    def test_distinct_names_distinct_ids(self, resolver):
        names = [f"Holding Company {i}" for i in range(500)]
        assert len({resolver.derive(n) for n in names}) == len(names)

    def test_long_names_bounded(self, resolver):
        derived = resolver.derive("A" * 100)
        assert len(derived) == 50
        assert derived.startswith("A" * 45 + "_")

    def test_custom_max_length(self):
        derived = IdentityResolver(max_length=20).derive("Some Very Long Company Name Here")
        assert len(derived) <= 20

    def test_custom_suffix_length(self):
        derived = IdentityResolver(suffix_length=6).derive("BlackRock Inc")
        assert re.match(r"^BlackRock_Inc_[a-z0-9]{6}$", derived)

    def test_invalid_lengths(self):
        with pytest.raises(ValueError):
            IdentityResolver(suffix_length=0)
        with pytest.raises(ValueError):
            IdentityResolver(suffix_length=4, max_length=5)


class TestHash:
    def test_empty_string(self):
        assert djb2_hash("") == 5381

    def test_single_char(self):
        # (5381 * 33) ^ ord("a")
        assert djb2_hash("a") == (5381 * 33) ^ 97

    def test_unsigned_32_bit(self):
        assert 0 <= djb2_hash("x" * 1000) < 2**32

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_suffix_fixed_width(self):
        assert hash_suffix("", length=4) == to_base36(5381)[-4:].rjust(4, "0")
        assert all(len(hash_suffix(str(i))) == 4 for i in range(200))


class TestResolve:
    def test_canonical_id_wins(self, resolver):
        assert resolver.resolve("BlackRock Inc", "E100001000348") == "E100001000348"

    def test_derived_without_id(self, resolver):
        assert resolver.resolve("BlackRock Inc") == resolver.derive("BlackRock Inc")

    def test_blank_id_falls_back_to_name(self, resolver):
        assert resolver.resolve("BlackRock Inc", "  ") == resolver.derive("BlackRock Inc")

    def test_nothing_to_resolve(self, resolver):
        assert resolver.resolve(None) is None
        assert resolver.resolve("   ", None) is None


class TestClassify:
    def test_gem_asset(self, resolver):
        assert resolver.classify("G100000109409") == IdKind.GEM_ASSET

    def test_gem_entity(self, resolver):
        assert resolver.classify("E100001000348") == IdKind.GEM_ENTITY

    def test_composite(self, resolver):
        assert resolver.classify("E100000000834_G100000109409") == IdKind.COMPOSITE

    def test_derived(self, resolver):
        assert resolver.classify(resolver.derive("BlackRock Inc")) == IdKind.DERIVED

    def test_unknown(self, resolver):
        assert resolver.classify("random_string") == IdKind.UNKNOWN
        assert resolver.classify("") == IdKind.UNKNOWN


class TestReferences:
    def test_split_composite(self):
        assert split_composite("E100000000834_G100000109409") == ("E100000000834", "G100000109409")
        assert split_composite("G100000109409") is None

    def test_parse_composite(self, resolver):
        ref = resolver.parse_reference("E100000000834_G100000109409")
        assert ref.kind == IdKind.COMPOSITE
        assert ref.entity_id == "E100000000834"
        assert ref.asset_id == "G100000109409"
        assert ref.primary_id == "G100000109409"

    def test_parse_plain_ids(self, resolver):
        assert resolver.parse_reference("G1").asset_id == "G1"
        assert resolver.parse_reference("E1").entity_id == "E1"
        assert resolver.parse_reference("E1").primary_id == "E1"

    def test_normalize(self, resolver):
        assert resolver.normalize_asset_id("E100000000834_G100000109409") == "G100000109409"
        assert resolver.normalize_asset_id("G100000109409") == "G100000109409"
        assert resolver.normalize_asset_id("E100000000834") is None
        assert resolver.normalize_entity_id("E100000000834") == "E100000000834"
        assert resolver.normalize_entity_id("BlackRock_Inc_ab12") is None
        assert resolver.normalize_entity_id("E100000000834_G100000109409") == "E100000000834"
        assert resolver.normalize_entity_id("G100000109409") is None
