"""
Entitlement Engine
Decides whether a user may register, change/delete or refresh a place.

Pure functions over profile/place state: callers load the rows and run these
checks before any crawl or AI dispatch, so a denied request has no side
effects.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sajang_api.db.models import SubscriptionTier
from sajang_api.errors import EntitlementError
from sajang_api.utils.time import as_utc

LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
CHANGE_COOLDOWN = "CHANGE_COOLDOWN"
SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
REFRESH_LIMIT_EXCEEDED = "REFRESH_LIMIT_EXCEEDED"


@dataclass(frozen=True)
class ChangeEntitlement:
    """Change/delete allowance summary shown on the dashboard."""

    can_change_place: bool
    next_change_available_date: Optional[datetime]
    has_wildcard_available: bool
    remaining_place_changes: int


def can_register(profile: Any, active_place_count: int) -> bool:
    """activePlaceCount excludes failed places."""
    return active_place_count < profile.max_places


def can_change_or_delete(profile: Any, now: datetime) -> bool:
    """The first change is always allowed; afterwards the cooldown applies."""
    if not profile.first_place_change_used:
        return True
    next_date = as_utc(profile.next_place_change_date)
    if next_date is None:
        return True
    return as_utc(now) >= next_date


def can_refresh(profile: Any, place: Any) -> bool:
    return (
        profile.subscription_tier != SubscriptionTier.FREE
        and (place.remaining_refreshes or 0) > 0
    )


def check_register_quota(profile: Any, active_place_count: int) -> Optional[EntitlementError]:
    """
    Returns:
        None if OK
        EntitlementError (LIMIT_EXCEEDED) if the place quota is used up
    """
    if can_register(profile, active_place_count):
        return None
    return EntitlementError(
        f"매장 등록 한도({profile.max_places}개)를 초과했습니다. "
        "기존 매장을 삭제하거나 구독 플랜을 업그레이드하세요.",
        error_code=LIMIT_EXCEEDED,
        extras={"max_places": profile.max_places, "used_places": active_place_count},
    )


def check_change_cooldown(profile: Any, now: datetime) -> Optional[EntitlementError]:
    """
    Returns:
        None if OK
        EntitlementError (CHANGE_COOLDOWN) carrying next_change_available_date
    """
    if can_change_or_delete(profile, now):
        return None
    return EntitlementError(
        "매장 변경 간격 제한으로 아직 변경할 수 없습니다.",
        error_code=CHANGE_COOLDOWN,
        extras={"next_change_available_date": as_utc(profile.next_place_change_date)},
    )


def check_refresh_allowance(profile: Any, place: Any) -> Optional[EntitlementError]:
    """
    Returns:
        None if OK
        EntitlementError (SUBSCRIPTION_REQUIRED or REFRESH_LIMIT_EXCEEDED)
    """
    if profile.subscription_tier == SubscriptionTier.FREE:
        return EntitlementError(
            "구독 사용자만 매장 정보 새로고침이 가능합니다.",
            error_code=SUBSCRIPTION_REQUIRED,
        )
    if not can_refresh(profile, place):
        return EntitlementError(
            "오늘의 새로고침 횟수를 모두 사용했습니다. 내일 다시 시도해주세요.",
            error_code=REFRESH_LIMIT_EXCEEDED,
            extras={"remainingRefreshes": 0},
        )
    return None


def change_info(profile: Any, now: datetime) -> ChangeEntitlement:
    return ChangeEntitlement(
        can_change_place=can_change_or_delete(profile, now),
        next_change_available_date=as_utc(profile.next_place_change_date),
        has_wildcard_available=not profile.first_place_change_used,
        remaining_place_changes=profile.remaining_place_changes or 0,
    )
