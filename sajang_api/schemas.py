"""Pydantic schemas for API requests/responses.

Request/response bodies of the place endpoints use camelCase keys (aliases);
the /my-places listing keeps the snake_case shape the dashboard reads.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Accepts both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# POST /places/register-or-get
# ============================================================================


class RegisterOrGetRequest(BaseModel):
    """Request body for POST /places/register-or-get."""

    # Optional so a missing URL surfaces as a 400 problem, not a 422
    url: Optional[str] = Field(default=None, description="Naver place URL")


class RegisterOrGetResponse(CamelModel):
    """Response for POST /places/register-or-get (202 new / 200 existing)."""

    message: str
    place_id: str = Field(..., alias="placeId", description="places.id")
    naver_place_id: str = Field(..., alias="naverPlaceId")
    status: str
    is_new: bool = Field(..., alias="isNew")
    content_last_changed_at: Optional[datetime] = Field(default=None, alias="contentLastChangedAt")
    is_ai_provider_error: Optional[bool] = Field(default=None, alias="isAiProviderError")


# ============================================================================
# POST /my-places/change, /my-places/complete-change
# ============================================================================


class PlaceChangeRequest(CamelModel):
    place_id: Optional[str] = Field(default=None, alias="placeId")
    new_place_url: Optional[str] = Field(default=None, alias="newPlaceUrl")


class PlaceChangeResponse(CamelModel):
    success: bool
    message: str
    place_id: str = Field(..., alias="placeId")
    naver_place_id: str = Field(..., alias="naverPlaceId")
    status: str


class CompleteChangeRequest(CamelModel):
    place_id: Optional[str] = Field(default=None, alias="placeId")
    is_first_change: bool = Field(default=False, alias="isFirstChange")


class CompleteChangeResponse(CamelModel):
    success: bool
    message: str
    remaining_place_changes: int = Field(..., alias="remainingPlaceChanges")
    next_place_change_date: Optional[datetime] = Field(default=None, alias="nextPlaceChangeDate")
    first_place_change_used: bool = Field(..., alias="firstPlaceChangeUsed")


# ============================================================================
# POST /refresh-place
# ============================================================================


class RefreshPlaceRequest(CamelModel):
    place_id: Optional[str] = Field(default=None, alias="placeId")


class RefreshPlaceResponse(CamelModel):
    success: bool
    message: str
    remaining_refreshes: int = Field(..., alias="remainingRefreshes")


# ============================================================================
# DELETE /places/{placeId}
# ============================================================================


class DeletePlaceResponse(CamelModel):
    success: bool
    message: str
    deleted_copies: int = Field(..., alias="deletedCopies")


# ============================================================================
# GET /my-places
# ============================================================================


class ProfileSummary(BaseModel):
    max_places: int
    used_places: int
    subscription_tier: str
    next_place_change_date: Optional[datetime] = None
    remaining_place_changes: int


class PlaceSummary(BaseModel):
    id: str
    place_id: str
    place_url: str
    place_name: Optional[str] = None
    place_address: Optional[str] = None
    place_image_url: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    remaining_refreshes: int
    last_crawled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    copies_count: int = 0


class ChangeInfo(BaseModel):
    can_change_place: bool
    next_change_available_date: Optional[datetime] = None
    has_wildcard_available: bool
    remaining_place_changes: int


class MyPlacesResponse(BaseModel):
    profile: ProfileSummary
    places: list[PlaceSummary]
    change_info: ChangeInfo


# ============================================================================
# POST /crawl-references
# ============================================================================


class CrawlReferencesRequest(BaseModel):
    urls: Optional[list[str]] = None


class ParsedReference(BaseModel):
    title: str
    author: Optional[str] = None
    url: str
    content: str
    summary: Optional[str] = None


class CrawlReferencesResponse(CamelModel):
    success: bool
    message: str
    total_attempted: int = Field(..., alias="totalAttempted")
    total_successful: int = Field(..., alias="totalSuccessful")
    formatted_content: str = Field(..., alias="formattedContent")
    parsed_results: list[ParsedReference] = Field(..., alias="parsedResults")


# ============================================================================
# POST /cron/daily-refresh, POST /subscription/cancel
# ============================================================================


class DailyRefreshResponse(BaseModel):
    success: bool
    message: str
    updated_places: int


class SubscriptionCancelRequest(BaseModel):
    billing_id: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool
    message: str


# ============================================================================
# Health Check
# ============================================================================


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str
    version: str
    services: dict[str, str]


# ============================================================================
# Error Responses (RFC 9457 Problem Details)
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs.

    Extension members:
    - error: user-facing message (same text as detail)
    - errorCode: machine-readable code (LIMIT_EXCEEDED, CHANGE_COOLDOWN, ...)
    Additional extension members (e.g. next_change_available_date) are allowed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Any = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(default=None, description="URI reference for this occurrence")
    error: Optional[str] = Field(default=None, description="User-facing error message")
    error_code: Optional[str] = Field(default=None, alias="errorCode")
