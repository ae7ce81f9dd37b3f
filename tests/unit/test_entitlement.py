"""Tests for entitlement rules (register quota, change cooldown, refresh allowance)."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from sajang_api.entitlement import (
    CHANGE_COOLDOWN,
    LIMIT_EXCEEDED,
    REFRESH_LIMIT_EXCEEDED,
    SUBSCRIPTION_REQUIRED,
    can_change_or_delete,
    can_refresh,
    can_register,
    change_info,
    check_change_cooldown,
    check_refresh_allowance,
    check_register_quota,
)
from sajang_api.errors import EntitlementError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _profile(**overrides):
    values = {
        "max_places": 1,
        "first_place_change_used": False,
        "next_place_change_date": None,
        "remaining_place_changes": 0,
        "subscription_tier": "free",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestRegisterQuota:
    def test_allowed_iff_below_max(self):
        for max_places in range(0, 5):
            for active in range(0, 6):
                profile = _profile(max_places=max_places)
                assert can_register(profile, active) is (active < max_places)

    def test_violation_carries_counts(self):
        error = check_register_quota(_profile(max_places=2), 2)

        assert isinstance(error, EntitlementError)
        assert error.error_code == LIMIT_EXCEEDED
        assert error.status_code == 403
        assert error.extras == {"max_places": 2, "used_places": 2}
        assert "2개" in error.detail

    def test_no_violation_returns_none(self):
        assert check_register_quota(_profile(max_places=2), 1) is None


class TestChangeCooldown:
    def test_first_change_always_allowed(self):
        profile = _profile(first_place_change_used=False, next_place_change_date=NOW + timedelta(days=10))
        assert can_change_or_delete(profile, NOW) is True

    @pytest.mark.parametrize(
        "offset, allowed",
        [
            (timedelta(days=-1), True),
            (timedelta(0), True),
            (timedelta(seconds=1), False),
            (timedelta(days=29), False),
        ],
    )
    def test_cooldown_boundary(self, offset, allowed):
        profile = _profile(first_place_change_used=True, next_place_change_date=NOW + offset)
        assert can_change_or_delete(profile, NOW) is allowed

    def test_used_wildcard_without_date_is_allowed(self):
        assert can_change_or_delete(_profile(first_place_change_used=True), NOW) is True

    def test_naive_stored_date_is_treated_as_utc(self):
        naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        profile = _profile(first_place_change_used=True, next_place_change_date=naive)

        assert can_change_or_delete(profile, NOW) is False
        assert can_change_or_delete(profile, NOW + timedelta(hours=2)) is True

    def test_violation_carries_next_date(self):
        next_date = NOW + timedelta(days=3)
        error = check_change_cooldown(
            _profile(first_place_change_used=True, next_place_change_date=next_date), NOW
        )

        assert error.error_code == CHANGE_COOLDOWN
        assert error.extras["next_change_available_date"] == next_date


class TestRefreshAllowance:
    def test_free_tier_never_refreshes(self):
        for remaining in range(0, 4):
            place = SimpleNamespace(remaining_refreshes=remaining)
            assert can_refresh(_profile(subscription_tier="free"), place) is False

    def test_paid_tiers_need_remaining(self):
        for tier in ("basic", "premium"):
            for remaining in range(0, 4):
                place = SimpleNamespace(remaining_refreshes=remaining)
                assert can_refresh(_profile(subscription_tier=tier), place) is (remaining > 0)

    def test_free_tier_error_code(self):
        error = check_refresh_allowance(_profile(), SimpleNamespace(remaining_refreshes=3))
        assert error.error_code == SUBSCRIPTION_REQUIRED

    def test_exhausted_error_code(self):
        error = check_refresh_allowance(
            _profile(subscription_tier="basic"), SimpleNamespace(remaining_refreshes=0)
        )
        assert error.error_code == REFRESH_LIMIT_EXCEEDED
        assert error.extras == {"remainingRefreshes": 0}

    def test_allowed(self):
        assert check_refresh_allowance(
            _profile(subscription_tier="premium"), SimpleNamespace(remaining_refreshes=1)
        ) is None


def test_change_info_summary():
    next_date = NOW + timedelta(days=1)
    info = change_info(
        _profile(first_place_change_used=True, next_place_change_date=next_date, remaining_place_changes=2),
        NOW,
    )

    assert info.can_change_place is False
    assert info.has_wildcard_available is False
    assert info.next_change_available_date == next_date
    assert info.remaining_place_changes == 2
