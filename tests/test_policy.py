from __future__ import annotations

import pytest

from chat2doc.core import QuotaExceeded
from chat2doc.models import SubscriptionTier, UserProfile
from chat2doc.policy import DEFAULT_LIMITS, InFlightPolicy, UnlimitedPolicy

PREMIUM = UserProfile(uid="p1", subscription=SubscriptionTier.PREMIUM)


def test_default_limits():
    policy = InFlightPolicy()
    assert policy.limit_for(None) == DEFAULT_LIMITS[SubscriptionTier.FREE] == 1
    assert policy.limit_for(PREMIUM) == 5


def test_free_user_gets_one_slot():
    policy = InFlightPolicy()
    policy.acquire("u1")
    with pytest.raises(QuotaExceeded) as info:
        policy.acquire("u1")
    assert info.value.kind == "QuotaExceeded"
    assert policy.in_flight("u1") == 1

    policy.acquire("u2")
    assert policy.in_flight("u2") == 1


def test_release_frees_the_slot():
    policy = InFlightPolicy()
    policy.acquire("u1")
    policy.release("u1")
    assert policy.in_flight("u1") == 0
    policy.acquire("u1")


def test_release_without_acquire_is_harmless():
    policy = InFlightPolicy()
    policy.release("ghost")
    assert policy.in_flight("ghost") == 0


def test_premium_limit():
    policy = InFlightPolicy()
    for _ in range(5):
        policy.acquire("p1", PREMIUM)
    with pytest.raises(QuotaExceeded):
        policy.acquire("p1", PREMIUM)


def test_overrides_accept_tier_names():
    policy = InFlightPolicy({"free": 2})  # type: ignore[dict-item]
    policy.acquire("u1")
    policy.acquire("u1")
    with pytest.raises(QuotaExceeded):
        policy.acquire("u1")
    assert policy.limit_for(PREMIUM) == 5


def test_unlimited():
    policy = UnlimitedPolicy()
    for _ in range(50):
        policy.acquire("u1")
    policy.release("u1")
