from __future__ import annotations

import pytest

from app.config.billing_catalog import (
    ALL_LOOKUP_KEYS,
    MONTHLY_LOOKUP_KEYS,
    PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL,
    Interval,
    Tier,
)
from app.services.billing_helpers import InvalidLookupKeyError, get_tier_and_interval_for_lookup_key


@pytest.mark.parametrize(
    "lookup_key, tier, interval",
    [
        ("monthly_hobby_plan", Tier.LOW, Interval.MONTHLY),
        ("annual_hobby_plan", Tier.LOW, Interval.ANNUAL),
        ("monthly_startup_plan", Tier.MID, Interval.MONTHLY),
        ("annual_startup_plan", Tier.MID, Interval.ANNUAL),
        ("monthly_business_plan", Tier.HIGH, Interval.MONTHLY),
        ("annual_business_plan", Tier.HIGH, Interval.ANNUAL),
    ],
)
def test_lookup_key_resolves_to_tier_and_interval(lookup_key, tier, interval):
    result = get_tier_and_interval_for_lookup_key(lookup_key)
    assert result.tier == tier
    assert result.interval == interval


def test_every_catalog_entry_resolves_back_to_itself():
    for tier, intervals in PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL.items():
        for interval, lookup_key in intervals.items():
            result = get_tier_and_interval_for_lookup_key(lookup_key)
            assert (result.tier, result.interval) == (tier, interval)


def test_lookup_keys_are_unique():
    assert len(set(ALL_LOOKUP_KEYS)) == 6
    assert MONTHLY_LOOKUP_KEYS == ("monthly_hobby_plan", "monthly_startup_plan", "monthly_business_plan")


@pytest.mark.parametrize("lookup_key", ["monthly_enterprise_plan", "", "MONTHLY_HOBBY_PLAN", "hobby"])
def test_unknown_lookup_key_raises(lookup_key):
    with pytest.raises(InvalidLookupKeyError) as exc_info:
        get_tier_and_interval_for_lookup_key(lookup_key)

    assert exc_info.value.lookup_key == lookup_key
    assert str(exc_info.value) == f"Invalid lookup key: {lookup_key}"


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        PRICE_LOOKUP_KEYS_BY_TIER_AND_INTERVAL[Tier.LOW] = {}
