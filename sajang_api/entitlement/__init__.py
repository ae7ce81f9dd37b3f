"""Entitlement checks for the place lifecycle."""

from sajang_api.entitlement.enforcement import (
    CHANGE_COOLDOWN,
    LIMIT_EXCEEDED,
    REFRESH_LIMIT_EXCEEDED,
    SUBSCRIPTION_REQUIRED,
    ChangeEntitlement,
    can_change_or_delete,
    can_refresh,
    can_register,
    change_info,
    check_change_cooldown,
    check_refresh_allowance,
    check_register_quota,
)

__all__ = [
    "CHANGE_COOLDOWN",
    "LIMIT_EXCEEDED",
    "REFRESH_LIMIT_EXCEEDED",
    "SUBSCRIPTION_REQUIRED",
    "ChangeEntitlement",
    "can_change_or_delete",
    "can_refresh",
    "can_register",
    "change_info",
    "check_change_cooldown",
    "check_refresh_allowance",
    "check_register_quota",
]
