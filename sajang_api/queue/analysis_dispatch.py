"""AI analysis dispatch via Supabase Edge Function.

The analysis itself runs out of process: the Edge Function reads the crawl
payload, calls the model and writes crawled_data/status back to the place
row. Dispatch only reports whether the function accepted the job.
"""

import logging
from typing import Any, Optional

from supabase import Client

from sajang_api.config import env
from sajang_api.supabase_client import create_supabase_admin_client

logger = logging.getLogger(__name__)

# Provider errors surfaced through the function response
_AI_PROVIDER_ERROR_MARKERS = ("GoogleGenerativeAI Error", "generativelanguage.googleapis.com")

AI_PROVIDER_ERROR_MESSAGE = (
    "일시적인 AI 서비스 오류가 발생했습니다. 잠시 후 다시 시도해주세요. "
    "문제가 지속되면 관리자에게 문의하세요."
)


def is_ai_provider_error(message: str) -> bool:
    return any(marker in message for marker in _AI_PROVIDER_ERROR_MARKERS)


class AnalysisDispatchError(Exception):
    """Raised when the analysis function could not be invoked."""

    def __init__(self, message: str, *, is_ai_provider_error: bool = False):
        super().__init__(message)
        self.is_ai_provider_error = is_ai_provider_error

    @property
    def user_message(self) -> str:
        """Message safe to persist and show to the place owner."""
        if self.is_ai_provider_error:
            return AI_PROVIDER_ERROR_MESSAGE
        return f"AI 분석 요청 실패: {self}"


class AnalysisInvoker:
    """Dispatches crawl results to the AI analysis Edge Function."""

    def __init__(self, client: Optional[Client] = None, function_name: Optional[str] = None):
        """
        Args:
            client: Service-role Supabase client. Created on first dispatch
                when omitted, so requests that never dispatch never need one.
            function_name: Edge Function name (AI_ANALYSIS_FUNCTION_NAME)
        """
        self._client = client
        self.function_name = function_name or env.get_ai_analysis_function_name()

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_supabase_admin_client()
        return self._client

    def dispatch(
        self,
        place_pk_id: str,
        markdown: str,
        metadata: dict[str, Any],
        *,
        is_refresh: bool = False,
    ) -> None:
        """
        Invoke the analysis function for a place.

        Args:
            place_pk_id: places.id the function writes results to
            markdown: Raw Firecrawl markdown
            metadata: Firecrawl metadata
            is_refresh: Re-analysis of an already completed place

        Raises:
            AnalysisDispatchError: If the invoke call fails for any reason
        """
        body: dict[str, Any] = {
            "place_pk_id": place_pk_id,
            "firecrawl_markdown": markdown,
            "firecrawl_metadata": metadata,
        }
        if is_refresh:
            body["is_refresh"] = True

        try:
            self.client.functions.invoke(self.function_name, invoke_options={"body": body})
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(
                "AI analysis dispatch failed",
                extra={
                    "event": "analysis.dispatch.failed",
                    "place_id": place_pk_id,
                    "function": self.function_name,
                    "error": message[:500],
                },
            )
            raise AnalysisDispatchError(
                message, is_ai_provider_error=is_ai_provider_error(message)
            ) from e

        logger.info(
            "AI analysis dispatched",
            extra={
                "event": "analysis.dispatch.accepted",
                "place_id": place_pk_id,
                "function": self.function_name,
                "is_refresh": is_refresh,
            },
        )


def get_analysis_invoker() -> AnalysisInvoker:
    """FastAPI dependency: request-scoped invoker."""
    return AnalysisInvoker()
