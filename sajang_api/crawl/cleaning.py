"""Markdown cleanup for reference posts fed into AI prompts.

Only the reference-crawl path cleans content; place analysis forwards the
raw Firecrawl markdown.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from sajang_api.crawl.firecrawl import CrawlError, CrawlResult

MAX_CONTENT_LENGTH = 4000

_HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

# Naver blog page chrome
_NAVIGATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\[.*?\]\(https?://.*?\)\s*!\[\]\(https?://blogimgs\.pstatic\.net/nblog/spc\.gif\)"),
    re.compile(r"\[\s*메뉴\s바로가기\s*\][\s\S]*?\[\s*본문\s바로가기\s*\]"),
    re.compile(r"\[\s*로그인\s*\][\s\S]*?\[\s*이웃추가\s*\]"),
    re.compile(r"블로그\s*검색[\s\S]*?이\s*블로그에서\s*검색"),
    re.compile(r"즐겨찾는\s*서비스[\s\S]*?전체\s*서비스\s*보기"),
    re.compile(r"^(\s*\[\s*[^\]\n]*?\s*\])+\s*$", re.MULTILINE),
    re.compile(r"확인[\s\S]*?취소[\s\S]*?초기\s*설정으로\s*변경"),
    re.compile(r"(\*\s*\*\s*\*\s*)+"),
    re.compile(r"Previous\s*image\s*Next\s*image"),
    re.compile(r"가벼운\s*글쓰기툴\s*퀵에디터가\s*오픈했어요!"),
    re.compile(r"글쓰기"),
    re.compile(r"\d+개의\s*글"),
    re.compile(r"읽은\s*알림\s*삭제\s*모두\s*삭제"),
    re.compile(r"알림을\s*모두\s*삭제하시겠습니까\??"),
    re.compile(r"\d+초\s*광고\s*후\s*계속됩니다"),
    re.compile(r"재생\s*좋아요\s*좋아요\s*공유하기"),
    re.compile(r"© NAVER Corp\.?"),
    re.compile(r"지도\s*데이터"),
    re.compile(r"지도\s*컨트롤러\s*범례"),
)

_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_LINK = re.compile(r"\[([^\]]+)\]\(https?://[^)]+\)")
_FOOTNOTE = re.compile(r"\*\*각주\d+\*\*")
_URL_REF = re.compile(r"\]\(https?://.*?\)")


@dataclass(frozen=True)
class ParsedContent:
    title: str
    url: str
    content: str
    author: Optional[str] = None
    summary: Optional[str] = None


def _remove_html(content: str) -> str:
    result = re.sub(r"<br\s*/?>", "\n", content, flags=re.IGNORECASE)
    result = re.sub(r"<[^>]*>", "", result)
    for entity, char in _HTML_ENTITIES:
        result = result.replace(entity, char)
    return result


def _remove_navigation(content: str) -> str:
    result = content
    for pattern in _NAVIGATION_PATTERNS:
        result = pattern.sub("", result)
    # Images before links so ![alt](src) is not unwrapped to "!alt"
    result = _IMAGE.sub("", result)
    result = _LINK.sub(r"\1", result)
    result = _FOOTNOTE.sub("", result)
    result = _URL_REF.sub("", result)
    return result


def _cleanup_tables(content: str) -> str:
    result = re.sub(r"\|\s*---\s*\|", "", content)
    result = re.sub(r"\|\s*\|\s*\|", "", result)
    result = re.sub(r"\|\s*\|", "", result)
    return re.sub(r"\|[\s-]*\|[\s-]*\|", "", result)


def _collapse_whitespace(content: str) -> str:
    result = re.sub(r"\n{3,}", "\n\n", content)
    result = re.sub(r"[ \t]+\n", "\n", result)
    result = re.sub(r"\n[ \t]+", "\n", result)
    result = re.sub(r"[ \t]{2,}", " ", result)
    return result.strip()


def clean_markdown(markdown: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Strip HTML, page chrome and table noise; truncate to max_length + "..."."""
    if not markdown:
        return ""
    cleaned = _remove_html(markdown)
    cleaned = _remove_navigation(cleaned)
    cleaned = _cleanup_tables(cleaned)
    cleaned = _collapse_whitespace(cleaned)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."
    return cleaned


def _first_str(metadata: dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str):
            return value
    return None


def parse_content(result: CrawlResult, url: str) -> ParsedContent:
    """Extract title/author/summary from metadata and clean the markdown.

    Raises:
        CrawlError: If the crawl produced no markdown
    """
    if not result.markdown:
        raise CrawlError("유효한 크롤링 콘텐츠가 아닙니다.")
    metadata = result.metadata or {}
    return ParsedContent(
        title=_first_str(metadata, "ogTitle", "title") or "제목 없음",
        author=_first_str(metadata, "naverblog:nickname", "author"),
        url=url,
        content=clean_markdown(result.markdown),
        summary=_first_str(metadata, "ogDescription", "description"),
    )


def format_for_ai_prompt(parsed_contents: list[ParsedContent]) -> str:
    """Render parsed references as the prompt block of example posts."""
    if not parsed_contents:
        return ""

    parts = ["### 참고할 예시 포스팅:\n\n"]
    last = len(parsed_contents) - 1
    for index, parsed in enumerate(parsed_contents):
        parts.append(f"#### 참고 자료 {index + 1}: {parsed.title}\n")
        parts.append(f"출처: {parsed.url}\n")
        if parsed.author:
            parts.append(f"작성자: {parsed.author}\n")
        if parsed.summary:
            parts.append(f"요약: {parsed.summary}\n")
        parts.append(f"\n{parsed.content}\n\n")
        if index < last:
            parts.append("---\n\n")
    return "".join(parts)
