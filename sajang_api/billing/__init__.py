"""Subscription billing integration (NicePay)."""
