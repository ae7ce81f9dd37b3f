"""Naver place id extraction from user-supplied URLs."""

import re
from typing import Optional

NAVER_PLACE_URL_TEMPLATE = "https://m.place.naver.com/restaurant/{place_id}/home"

# Checked in order; first match wins.
_PLACE_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    # New Naver Map URLs: map.naver.com/p/.../place/<id>
    re.compile(r"map\.naver\.com/p/.*/place/(\d+)"),
    re.compile(r"/restaurant/(\d+)"),
    re.compile(r"/place/(\d+)"),
    re.compile(r"/establishments/(\d+)"),
    re.compile(r"/attractions/(\d+)"),
    re.compile(r"/accommodations/(\d+)"),
    re.compile(r"/beauty/(\d+)"),
    re.compile(r"/hospital/(\d+)"),
    re.compile(r"/shopping/(\d+)"),
    # Trailing numeric path segment
    re.compile(r"/(\d+)(?:[?#]|$)"),
)


def extract_naver_place_id(url: Optional[str]) -> Optional[str]:
    """Extract the numeric Naver place id from a place URL.

    >>> extract_naver_place_id("https://m.place.naver.com/restaurant/12345")
    '12345'
    >>> extract_naver_place_id("https://example.com/") is None
    True
    """
    if not url:
        return None
    for pattern in _PLACE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def standardized_place_url(naver_place_id: str) -> str:
    """Canonical mobile place URL used for every crawl."""
    return NAVER_PLACE_URL_TEMPLATE.format(place_id=naver_place_id)
