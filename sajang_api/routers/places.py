"""Place registration and deletion endpoints."""

from fastapi import APIRouter, Depends, Response

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.places.lifecycle import PlaceLifecycle, get_place_lifecycle
from sajang_api.schemas import DeletePlaceResponse, RegisterOrGetRequest, RegisterOrGetResponse

router = APIRouter(prefix="/places", tags=["places"])


@router.post(
    "/register-or-get",
    response_model=RegisterOrGetResponse,
    response_model_exclude_none=True,
    status_code=202,
)
async def register_or_get_place(
    payload: RegisterOrGetRequest,
    response: Response,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> RegisterOrGetResponse:
    """Register a Naver place, or return the caller's existing registration.

    202 when a new place was created (poll /my-places for analysis status),
    200 when the place was already registered.
    """
    outcome = await lifecycle.register_or_get(payload.url, auth.user_id)
    response.status_code = outcome.http_status
    return RegisterOrGetResponse(
        message=outcome.message,
        place_id=outcome.place_id,
        naver_place_id=outcome.naver_place_id,
        status=outcome.status,
        is_new=outcome.is_new,
        content_last_changed_at=outcome.content_last_changed_at,
        is_ai_provider_error=outcome.is_ai_provider_error,
    )


@router.delete("/{place_id}", response_model=DeletePlaceResponse)
async def delete_place(
    place_id: str,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> DeletePlaceResponse:
    """Delete a place and its generated copies (subject to the change cooldown)."""
    copies_deleted = lifecycle.delete(place_id, auth.user_id)
    return DeletePlaceResponse(
        success=True,
        message="매장이 삭제되었습니다.",
        deleted_copies=copies_deleted,
    )
