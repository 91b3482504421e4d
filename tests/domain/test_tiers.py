"""Tests for the tier registry."""

import pytest

from dealflow.domain.tiers import (
    TIERS,
    UNBOUNDED,
    Role,
    TierId,
    free_tier,
    get_quota,
    get_tier,
    has_feature,
    is_unbounded,
    tiers_for_role,
)

pytestmark = pytest.mark.unit


def test_every_tier_id_is_registered():
    """Every enum member has a definition keyed by its own id."""
    assert set(TIERS) == set(TierId)
    for tier_id, tier in TIERS.items():
        assert tier.id == tier_id


def test_get_tier_accepts_raw_string():
    assert get_tier("investor_basic").id == TierId.INVESTOR_BASIC


def test_unknown_tier_falls_back_to_seeker_free_tier():
    assert get_tier("platinum", Role.SEEKER).id == TierId.DISCOVERY


def test_unknown_tier_falls_back_to_provider_free_tier():
    assert get_tier("platinum", Role.PROVIDER).id == TierId.EXPLORE


def test_missing_tier_for_operator_uses_provider_family():
    assert get_tier(None, Role.OPERATOR).id == TierId.EXPLORE


def test_quotas_match_catalog():
    assert get_quota(TierId.DISCOVERY, "profile_views") == 2
    assert get_quota(TierId.STARTER, "contacts") == 10
    assert get_quota(TierId.EXPLORE, "contacts") == 0
    assert get_quota(TierId.INVESTOR_BASIC, "contacts") == 20
    assert get_quota(TierId.INVESTOR_PRO, "profile_views") == UNBOUNDED
    assert is_unbounded(get_quota(TierId.GROWTH, "contacts"))


def test_has_feature_is_case_insensitive_substring():
    assert has_feature(TierId.FUNDRAISE_PRO, "warm INTRO") is True
    assert has_feature(TierId.INVESTOR_PRO, "deal-flow") is True


def test_has_feature_false_for_other_tier():
    assert has_feature(TierId.STARTER, "warm intro") is False


def test_has_feature_empty_string_is_false():
    assert has_feature(TierId.GROWTH, "") is False


def test_tiers_for_role_sorted_by_price():
    seeker_tiers = [tier.id for tier in tiers_for_role(Role.SEEKER)]
    assert seeker_tiers == [TierId.DISCOVERY, TierId.STARTER, TierId.GROWTH, TierId.FUNDRAISE_PRO]


def test_free_tier_is_free():
    assert free_tier(Role.PROVIDER).is_free
    assert free_tier(Role.SEEKER).base_price == 0


def test_popular_tiers():
    popular = {tier.id for tier in TIERS.values() if tier.is_popular}
    assert popular == {TierId.GROWTH, TierId.INVESTOR_PRO}
