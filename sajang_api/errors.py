"""Typed API errors.

Each error carries the HTTP status, RFC 9457 title, a problem type slug and
an optional machine-readable error code. The exception handler in main.py
renders them as application/problem+json.
"""

from typing import Any, Optional

PROBLEM_TYPE_BASE = "urn:sajangnote:problem:"


class SajangError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code: int = 500
    title: str = "Internal Server Error"
    type_slug: str = "internal-error"
    error_code: Optional[str] = None

    def __init__(
        self,
        detail: str,
        *,
        error_code: Optional[str] = None,
        extras: Optional[dict[str, Any]] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        if error_code is not None:
            self.error_code = error_code
        self.extras: dict[str, Any] = extras or {}

    @property
    def type_uri(self) -> str:
        return f"{PROBLEM_TYPE_BASE}{self.type_slug}"


class ValidationError(SajangError):
    """Malformed or missing request input (400)."""

    status_code = 400
    title = "Bad Request"
    type_slug = "validation-error"


class InvalidUrlError(ValidationError):
    """URL did not yield a Naver place id."""

    type_slug = "invalid-url"
    error_code = "INVALID_URL"


class AuthError(SajangError):
    status_code = 401
    title = "Unauthorized"
    type_slug = "unauthorized"


class EntitlementError(SajangError):
    """Action not permitted by the caller's plan or cooldown (403)."""

    status_code = 403
    title = "Forbidden"
    type_slug = "entitlement-denied"


class NotFoundError(SajangError):
    status_code = 404
    title = "Not Found"
    type_slug = "not-found"


class OwnershipError(NotFoundError):
    """Resource exists but belongs to someone else.

    Rendered as 404 so existence of other users' places is not disclosed.
    """


class ConflictError(SajangError):
    status_code = 409
    title = "Conflict"
    type_slug = "conflict"


class UpstreamError(SajangError):
    """Crawl provider or AI dispatch failed (500)."""

    status_code = 500
    title = "Internal Server Error"
    type_slug = "upstream-error"


class PaymentGatewayError(SajangError):
    status_code = 502
    title = "Bad Gateway"
    type_slug = "payment-gateway-error"
