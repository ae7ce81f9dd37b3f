"""Manual place refresh endpoint."""

from fastapi import APIRouter, Depends, Response

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.places.lifecycle import PlaceLifecycle, get_place_lifecycle
from sajang_api.schemas import RefreshPlaceRequest, RefreshPlaceResponse

router = APIRouter(tags=["places"])


@router.post("/refresh-place", response_model=RefreshPlaceResponse)
async def refresh_place(
    payload: RefreshPlaceRequest,
    response: Response,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> RefreshPlaceResponse:
    """Re-crawl and re-analyse a place (paid tiers, daily allowance).

    202 with success=false when the crawl succeeded but analysis could not be
    dispatched; the refresh is not consumed in that case.
    """
    outcome = await lifecycle.refresh(payload.place_id, auth.user_id)
    response.status_code = outcome.http_status
    return RefreshPlaceResponse(
        success=outcome.success,
        message=outcome.message,
        remaining_refreshes=outcome.remaining_refreshes,
    )
