"""Reference post crawling for AI copy prompts.

Users paste up to three example posts (usually Naver blog entries); each is
scraped in parallel, cleaned and rendered into a prompt block.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from sajang_api.crawl.cleaning import ParsedContent, format_for_ai_prompt, parse_content
from sajang_api.crawl.firecrawl import REFERENCE_CRAWL_TIMEOUT_MS, CrawlError, FirecrawlClient
from sajang_api.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

MAX_REFERENCE_URLS = 3


@dataclass
class ReferenceCrawlReport:
    total_attempted: int
    parsed: list[ParsedContent]
    formatted_content: str


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_reference_urls(urls: Optional[list[str]]) -> list[str]:
    """
    Raises:
        ValidationError: No URLs, more than MAX_REFERENCE_URLS, or none valid
    """
    if not urls:
        raise ValidationError("크롤링할 URL이 필요합니다.")
    if len(urls) > MAX_REFERENCE_URLS:
        raise ValidationError(f"최대 {MAX_REFERENCE_URLS}개의 URL만 처리할 수 있습니다.")
    valid = [url for url in urls if isinstance(url, str) and is_valid_url(url)]
    if not valid:
        raise ValidationError("유효한 URL이 없습니다.")
    return valid


async def _crawl_one(crawler: FirecrawlClient, url: str) -> Optional[ParsedContent]:
    try:
        result = await crawler.scrape(
            url,
            only_main_content="blog.naver.com" in url,
            timeout_ms=REFERENCE_CRAWL_TIMEOUT_MS,
        )
        return parse_content(result, url)
    except CrawlError as e:
        logger.warning(
            "Reference crawl failed",
            extra={"event": "references.crawl.failed", "url": url, "error": str(e)[:300]},
        )
        return None


async def crawl_references(crawler: FirecrawlClient, urls: Optional[list[str]]) -> ReferenceCrawlReport:
    """Crawl reference URLs in parallel; individual failures are skipped.

    Raises:
        ValidationError: See validate_reference_urls
        UpstreamError: Every URL failed
    """
    valid_urls = validate_reference_urls(urls)
    results = await asyncio.gather(*(_crawl_one(crawler, url) for url in valid_urls))
    parsed = [result for result in results if result is not None]

    if not parsed:
        raise UpstreamError("모든 URL 크롤링에 실패했습니다.")

    logger.info(
        "Reference crawl completed",
        extra={
            "event": "references.crawl.completed",
            "attempted": len(valid_urls),
            "successful": len(parsed),
        },
    )
    return ReferenceCrawlReport(
        total_attempted=len(valid_urls),
        parsed=parsed,
        formatted_content=format_for_ai_prompt(parsed),
    )
