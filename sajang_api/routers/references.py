"""Reference post crawl endpoint."""

from fastapi import APIRouter, Depends

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.crawl.firecrawl import FirecrawlClient, get_firecrawl_client
from sajang_api.crawl.references import crawl_references
from sajang_api.schemas import CrawlReferencesRequest, CrawlReferencesResponse, ParsedReference

router = APIRouter(tags=["references"])


@router.post("/crawl-references", response_model=CrawlReferencesResponse)
async def crawl_reference_posts(
    payload: CrawlReferencesRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    crawler: FirecrawlClient = Depends(get_firecrawl_client),
) -> CrawlReferencesResponse:
    """Crawl up to three example posts and render them for the copy prompt."""
    report = await crawl_references(crawler, payload.urls)
    return CrawlReferencesResponse(
        success=True,
        message=f"{len(report.parsed)}개의 URL이 성공적으로 크롤링되었습니다.",
        total_attempted=report.total_attempted,
        total_successful=len(report.parsed),
        formatted_content=report.formatted_content,
        parsed_results=[
            ParsedReference(
                title=item.title,
                author=item.author,
                url=item.url,
                content=item.content,
                summary=item.summary,
            )
            for item in report.parsed
        ],
    )
