"""Tests for reference post cleanup and prompt formatting."""

import pytest

from sajang_api.crawl.cleaning import (
    MAX_CONTENT_LENGTH,
    ParsedContent,
    clean_markdown,
    format_for_ai_prompt,
    parse_content,
)
from sajang_api.crawl.firecrawl import CrawlError, CrawlResult


class TestCleanMarkdown:
    def test_strips_html_and_entities(self):
        cleaned = clean_markdown("첫 줄<br/>둘째 줄 <b>굵게</b> &amp; &nbsp;끝")
        assert cleaned == "첫 줄\n둘째 줄 굵게 & 끝"

    def test_removes_images_and_unwraps_links(self):
        markdown = "![사진](https://img.example.com/a.jpg) [메뉴 보기](https://example.com/menu) 입니다"
        assert clean_markdown(markdown) == "메뉴 보기 입니다"

    def test_removes_naver_chrome(self):
        markdown = (
            "[메뉴 바로가기](#menu) [본문 바로가기](#body)\n"
            "본문 시작\n"
            "글쓰기\n"
            "12개의 글\n"
            "© NAVER Corp.\n"
            "본문 끝"
        )
        cleaned = clean_markdown(markdown)

        assert "본문 시작" in cleaned
        assert "본문 끝" in cleaned
        assert "글쓰기" not in cleaned
        assert "NAVER Corp" not in cleaned
        assert "개의 글" not in cleaned

    def test_collapses_blank_lines(self):
        assert clean_markdown("a\n\n\n\n\nb   c") == "a\n\nb c"

    def test_truncates_with_ellipsis(self):
        cleaned = clean_markdown("가" * (MAX_CONTENT_LENGTH + 100))
        assert len(cleaned) == MAX_CONTENT_LENGTH + 3
        assert cleaned.endswith("...")

    def test_empty_input(self):
        assert clean_markdown("") == ""


class TestParseContent:
    def test_prefers_og_metadata(self):
        result = CrawlResult(
            markdown="본문",
            metadata={
                "ogTitle": "OG 제목",
                "title": "페이지 제목",
                "naverblog:nickname": "블로거",
                "ogDescription": "OG 요약",
            },
        )

        parsed = parse_content(result, "https://blog.naver.com/a/1")

        assert parsed == ParsedContent(
            title="OG 제목",
            url="https://blog.naver.com/a/1",
            content="본문",
            author="블로거",
            summary="OG 요약",
        )

    def test_fallbacks(self):
        parsed = parse_content(CrawlResult(markdown="본문", metadata={}), "https://example.com")

        assert parsed.title == "제목 없음"
        assert parsed.author is None
        assert parsed.summary is None

    def test_empty_markdown_raises(self):
        with pytest.raises(CrawlError):
            parse_content(CrawlResult(markdown="", metadata={"title": "x"}), "https://example.com")


class TestFormatForPrompt:
    def test_empty_list(self):
        assert format_for_ai_prompt([]) == ""

    def test_sections_and_separators(self):
        items = [
            ParsedContent(title="글1", url="https://a.example", content="내용1", author="작가"),
            ParsedContent(title="글2", url="https://b.example", content="내용2", summary="요약2"),
        ]

        text = format_for_ai_prompt(items)

        assert text.startswith("### 참고할 예시 포스팅:\n\n#### 참고 자료 1: 글1\n출처: https://a.example\n작성자: 작가\n")
        assert "#### 참고 자료 2: 글2\n출처: https://b.example\n요약: 요약2\n" in text
        assert text.count("---") == 1
        assert "요약: " not in text.split("---")[0]
