"""
Tests for the static country registry.
"""

import pytest

from team_atlas.normalizer.schemas import PriorityTier
from team_atlas.orchestrator.country_registry import (
    COUNTRIES,
    classify_tier,
    countries_in_tier,
    get_country,
    is_known_country,
    normalize_country_code,
)


class TestCountryRegistry:
    """Test code normalization and tier lookup."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("ar", "AR"), (" gb ", "GB"), ("uk", "GB"), ("GER", "DE"), ("", ""), (None, "")],
    )
    def test_normalize(self, raw, expected):
        assert normalize_country_code(raw) == expected

    @pytest.mark.parametrize(
        "code,tier",
        [("AR", PriorityTier.TIER_1), ("GB", PriorityTier.TIER_1), ("CA", PriorityTier.TIER_2),
         ("FJ", PriorityTier.TIER_3), ("BT", PriorityTier.TIER_3), ("XZ", PriorityTier.TIER_3)],
    )
    def test_classify_tier(self, code, tier):
        assert classify_tier(code) == tier

    def test_unknown_country(self):
        info = get_country("xz")

        assert info.code == "XZ"
        assert info.name == "XZ"
        assert info.wikidata_id is None
        assert not is_known_country("XZ")

    def test_known_country(self):
        info = get_country("ARG")

        assert info.name == "Argentina"
        assert info.wikidata_id == "Q414"
        assert is_known_country("arg")

    def test_tiers_partition_registry(self):
        counts = [len(countries_in_tier(tier)) for tier in PriorityTier]

        assert sum(counts) == len(COUNTRIES)
        assert all(count > 0 for count in counts)
