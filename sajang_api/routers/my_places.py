"""My places: listing and the two-phase place change."""

from fastapi import APIRouter, Depends

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.places.lifecycle import PlaceLifecycle, get_place_lifecycle
from sajang_api.schemas import (
    ChangeInfo,
    CompleteChangeRequest,
    CompleteChangeResponse,
    MyPlacesResponse,
    PlaceChangeRequest,
    PlaceChangeResponse,
    PlaceSummary,
    ProfileSummary,
)

router = APIRouter(prefix="/my-places", tags=["my-places"])


@router.get("", response_model=MyPlacesResponse)
async def list_my_places(
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> MyPlacesResponse:
    """Profile allowance summary, places (newest first) and change info."""
    listing = lifecycle.list_places(auth.user_id)
    profile = listing.profile
    info = listing.change_info

    return MyPlacesResponse(
        profile=ProfileSummary(
            max_places=profile.max_places,
            used_places=listing.used_places,
            subscription_tier=profile.subscription_tier,
            next_place_change_date=profile.next_place_change_date,
            remaining_place_changes=profile.remaining_place_changes,
        ),
        places=[
            PlaceSummary(
                id=place.id,
                place_id=place.place_id,
                place_url=place.place_url,
                place_name=place.place_name,
                place_address=place.place_address,
                place_image_url=place.place_image_url,
                status=place.status,
                error_message=place.error_message,
                remaining_refreshes=place.remaining_refreshes,
                last_crawled_at=place.last_crawled_at,
                created_at=place.created_at,
                updated_at=place.updated_at,
                copies_count=listing.copies_count.get(place.id, 0),
            )
            for place in listing.places
        ],
        change_info=ChangeInfo(
            can_change_place=info.can_change_place,
            next_change_available_date=info.next_change_available_date,
            has_wildcard_available=info.has_wildcard_available,
            remaining_place_changes=info.remaining_place_changes,
        ),
    )


@router.post("/change", response_model=PlaceChangeResponse)
async def prepare_place_change(
    payload: PlaceChangeRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> PlaceChangeResponse:
    """Phase 1: switch the place to a new Naver place and start analysis.

    The change allowance is consumed by /my-places/complete-change.
    """
    outcome = await lifecycle.prepare_change(payload.place_id, payload.new_place_url, auth.user_id)
    return PlaceChangeResponse(
        success=True,
        message=outcome.message,
        place_id=outcome.place_id,
        naver_place_id=outcome.naver_place_id,
        status=outcome.status,
    )


@router.post("/complete-change", response_model=CompleteChangeResponse)
async def complete_place_change(
    payload: CompleteChangeRequest,
    auth: SessionAuthContext = Depends(get_session_auth_context),
    lifecycle: PlaceLifecycle = Depends(get_place_lifecycle),
) -> CompleteChangeResponse:
    """Phase 2: consume the allowance once the place reached completed."""
    outcome = lifecycle.complete_change(payload.place_id, payload.is_first_change, auth.user_id)
    return CompleteChangeResponse(
        success=True,
        message=outcome.message,
        remaining_place_changes=outcome.remaining_place_changes,
        next_place_change_date=outcome.next_place_change_date,
        first_place_change_used=outcome.first_place_change_used,
    )
