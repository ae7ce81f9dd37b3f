"""Firecrawl scrape API client.

API Documentation: https://docs.firecrawl.dev/api-reference/endpoint/scrape

Failure policy: a 400/403 response, a timeout or a transport error triggers
exactly one retry with the minimal payload ({url, formats}). Nothing else is
retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from sajang_api.config import env

logger = logging.getLogger(__name__)

EXCLUDE_TAGS = ["nav", "footer", "script", "style", "iframe", "noscript"]
WAIT_FOR_MS = 3000
PLACE_CRAWL_TIMEOUT_MS = 55000
REFERENCE_CRAWL_TIMEOUT_MS = 60000
FALLBACK_STATUS_CODES = frozenset({400, 403})

# Client-side timeout must outlast the provider-side scrape timeout
HTTP_TIMEOUT_SECONDS = 75.0

CONFIGURATION_ERROR_MESSAGE = "URL 정보 수집 서비스 설정 오류입니다. 관리자에게 문의하세요."


@dataclass(frozen=True)
class CrawlResult:
    markdown: str
    metadata: dict[str, Any]


class CrawlError(Exception):
    """Raised when a page could not be scraped."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FirecrawlClient:
    """Async Firecrawl client.

    A fresh httpx.AsyncClient is opened per request; pass ``transport`` to
    route requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = env.DEFAULT_FIRECRAWL_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    @property
    def scrape_url(self) -> str:
        return f"{self.base_url}/v1/scrape"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            return await client.post(self.scrape_url, headers=self._headers(), json=payload)

    async def scrape(
        self,
        url: str,
        *,
        only_main_content: bool = False,
        timeout_ms: int = PLACE_CRAWL_TIMEOUT_MS,
    ) -> CrawlResult:
        """Scrape a page to markdown.

        Args:
            url: Page URL
            only_main_content: Ask Firecrawl to drop page chrome
            timeout_ms: Provider-side scrape timeout

        Returns:
            CrawlResult with markdown and provider metadata

        Raises:
            CrawlError: Missing API key, non-2xx response after the fallback,
                or a response without markdown/metadata
        """
        if not self.api_key:
            logger.error(
                "Firecrawl API key not configured",
                extra={"event": "firecrawl.config.missing_key"},
            )
            raise CrawlError(CONFIGURATION_ERROR_MESSAGE)

        payload = {
            "url": url,
            "formats": ["markdown"],
            "onlyMainContent": only_main_content,
            "excludeTags": EXCLUDE_TAGS,
            "waitFor": WAIT_FOR_MS,
            "timeout": timeout_ms,
        }

        logger.info("Firecrawl scrape started", extra={"event": "firecrawl.scrape.started", "url": url})

        try:
            response = await self._post(payload)
        except httpx.TransportError as e:
            # TimeoutException is a TransportError
            logger.warning(
                "Firecrawl network error, retrying with minimal payload",
                extra={"event": "firecrawl.scrape.fallback", "url": url, "reason": type(e).__name__},
            )
            return await self._scrape_minimal(url)

        if response.status_code in FALLBACK_STATUS_CODES:
            logger.warning(
                "Firecrawl rejected options, retrying with minimal payload",
                extra={
                    "event": "firecrawl.scrape.fallback",
                    "url": url,
                    "status_code": response.status_code,
                    "body": response.text[:500],
                },
            )
            return await self._scrape_minimal(url)

        return self._parse(response, url=url, retried=False)

    async def _scrape_minimal(self, url: str) -> CrawlResult:
        payload = {"url": url, "formats": ["markdown"]}
        try:
            response = await self._post(payload)
        except httpx.TransportError as e:
            raise CrawlError(f"Firecrawl API 재시도 실패: {type(e).__name__}: {e}") from e
        return self._parse(response, url=url, retried=True)

    def _parse(self, response: httpx.Response, *, url: str, retried: bool) -> CrawlResult:
        label = "Firecrawl API 재시도 실패" if retried else "Firecrawl API 요청 실패"
        if not response.is_success:
            body = response.text
            logger.error(
                "Firecrawl API error",
                extra={
                    "event": "firecrawl.scrape.failed",
                    "url": url,
                    "status_code": response.status_code,
                    "retried": retried,
                    "body": body[:500],
                },
            )
            raise CrawlError(
                f"{label} ({response.status_code}): {body or response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise CrawlError(f"{label}: invalid JSON response", status_code=response.status_code) from e

        if not isinstance(result, dict):
            result = {}
        data = result.get("data") or {}
        if not result.get("success") or not data.get("markdown") or not data.get("metadata"):
            logger.error(
                "Firecrawl response missing markdown or metadata",
                extra={"event": "firecrawl.scrape.empty", "url": url, "retried": retried},
            )
            raise CrawlError(
                "Firecrawl API에서 유효한 마크다운 또는 메타데이터를 가져오지 못했습니다.",
                status_code=response.status_code,
            )

        logger.info(
            "Firecrawl scrape completed",
            extra={
                "event": "firecrawl.scrape.completed",
                "url": url,
                "retried": retried,
                "markdown_length": len(data["markdown"]),
            },
        )
        return CrawlResult(markdown=data["markdown"], metadata=data["metadata"])


def get_firecrawl_client() -> FirecrawlClient:
    """FastAPI dependency: Firecrawl client configured from the environment."""
    return FirecrawlClient(
        api_key=env.get_firecrawl_api_key(),
        base_url=env.get_firecrawl_base_url(),
    )
