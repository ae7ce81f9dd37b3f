"""Tests for POST /crawl-references."""

from unittest.mock import AsyncMock

from sajang_api.crawl.firecrawl import REFERENCE_CRAWL_TIMEOUT_MS, CrawlError, CrawlResult

BLOG_URL = "https://blog.naver.com/someone/223000000001"
CAFE_URL = "https://example.com/posts/1"


def _result(title: str, body: str) -> CrawlResult:
    return CrawlResult(
        markdown=f"# {title}\n\n{body}",
        metadata={"ogTitle": title, "naverblog:nickname": "맛집탐방러", "ogDescription": "요약입니다"},
    )


class TestCrawlReferences:
    def test_crawls_and_formats_references(self, test_client, crawler):
        crawler.scrape = AsyncMock(
            side_effect=[_result("강남 맛집 후기", "정말 맛있어요"), _result("두번째 글", "분위기 좋아요")]
        )

        response = test_client.post("/crawl-references", json={"urls": [BLOG_URL, CAFE_URL]})

        assert response.status_code == 200
        data = response.json()
        assert data["totalAttempted"] == 2
        assert data["totalSuccessful"] == 2
        assert data["formattedContent"].startswith("### 참고할 예시 포스팅:")
        assert "#### 참고 자료 1: 강남 맛집 후기" in data["formattedContent"]
        assert "작성자: 맛집탐방러" in data["formattedContent"]
        assert data["parsedResults"][0]["url"] == BLOG_URL

        first_call, second_call = crawler.scrape.await_args_list
        assert first_call.kwargs == {"only_main_content": True, "timeout_ms": REFERENCE_CRAWL_TIMEOUT_MS}
        assert second_call.kwargs["only_main_content"] is False

    def test_partial_failure_is_skipped(self, test_client, crawler):
        crawler.scrape = AsyncMock(side_effect=[CrawlError("blocked"), _result("살아남은 글", "내용")])

        response = test_client.post("/crawl-references", json={"urls": [BLOG_URL, CAFE_URL]})

        assert response.status_code == 200
        data = response.json()
        assert data["totalAttempted"] == 2
        assert data["totalSuccessful"] == 1
        assert data["parsedResults"][0]["title"] == "살아남은 글"

    def test_all_failures_return_500(self, test_client, crawler):
        crawler.scrape = AsyncMock(side_effect=CrawlError("blocked"))

        response = test_client.post("/crawl-references", json={"urls": [BLOG_URL]})

        assert response.status_code == 500
        assert response.json()["error"] == "모든 URL 크롤링에 실패했습니다."

    def test_more_than_three_urls_rejected(self, test_client, crawler):
        urls = [f"https://example.com/{i}" for i in range(4)]

        response = test_client.post("/crawl-references", json={"urls": urls})

        assert response.status_code == 400
        crawler.scrape.assert_not_awaited()

    def test_no_valid_urls_rejected(self, test_client, crawler):
        response = test_client.post("/crawl-references", json={"urls": ["not a url", "ftp://x"]})

        assert response.status_code == 400
        assert response.json()["error"] == "유효한 URL이 없습니다."

    def test_empty_body_rejected(self, test_client):
        response = test_client.post("/crawl-references", json={})

        assert response.status_code == 400
