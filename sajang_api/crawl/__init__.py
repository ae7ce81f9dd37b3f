"""Page crawling: Naver place URLs, Firecrawl client, markdown cleanup."""

from sajang_api.crawl.firecrawl import CrawlError, CrawlResult, FirecrawlClient, get_firecrawl_client
from sajang_api.crawl.naver import extract_naver_place_id, standardized_place_url

__all__ = [
    "CrawlError",
    "CrawlResult",
    "FirecrawlClient",
    "extract_naver_place_id",
    "get_firecrawl_client",
    "standardized_place_url",
]
