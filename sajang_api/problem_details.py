"""
RFC 9457 Problem Details responses
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse

from sajang_api.context import request_id_var
from sajang_api.errors import PROBLEM_TYPE_BASE, SajangError
from sajang_api.schemas import ProblemDetail

_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def title_for_status(status_code: int) -> str:
    return _TITLES.get(status_code, "Error")


def _instance() -> Optional[str]:
    request_id = request_id_var.get()
    return f"urn:sajangnote:trace:{request_id}" if request_id else None


def create_problem_details_response(
    *,
    type_uri: str,
    title: str,
    status: int,
    detail: Any,
    error_code: Optional[str] = None,
    extras: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """
    Create RFC 9457 Problem Details JSON response

    Args:
        type_uri: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation (also exposed as "error")
        error_code: Machine-readable code (exposed as "errorCode")
        extras: Additional extension members
        headers: Optional additional headers

    Returns:
        JSONResponse with application/problem+json content type
    """
    problem = ProblemDetail(
        type=type_uri,
        title=title,
        status=status,
        detail=detail,
        instance=_instance(),
        error=detail if isinstance(detail, str) else None,
        error_code=error_code,
        **(extras or {}),
    )

    response_headers = {"Content-Type": "application/problem+json"}
    if headers:
        response_headers.update(headers)

    return JSONResponse(
        status_code=status,
        content=problem.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=response_headers,
    )


def problem_from_error(exc: SajangError) -> JSONResponse:
    return create_problem_details_response(
        type_uri=exc.type_uri,
        title=exc.title,
        status=exc.status_code,
        detail=exc.detail,
        error_code=exc.error_code,
        extras=exc.extras,
    )


def problem_from_status(status_code: int, detail: Any) -> JSONResponse:
    """Problem response for framework-raised errors (HTTPException, 422, 500)."""
    slug = title_for_status(status_code).lower().replace(" ", "-")
    return create_problem_details_response(
        type_uri=f"{PROBLEM_TYPE_BASE}{slug}",
        title=title_for_status(status_code),
        status=status_code,
        detail=detail,
    )
