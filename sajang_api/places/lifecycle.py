"""Place lifecycle orchestration.

Register-or-get, two-phase change (prepare, then complete once analysis has
finished), refresh, delete and listing. Every precondition and entitlement
check runs before any crawl or dispatch; a failure after the place has been
claimed leaves it in a visible terminal state with a short error_message.

State machine (places.status):

    (none) --register--> processing --analysis ok--> completed
                              |                         |
                              +--crawl/dispatch fail--> failed
    completed/failed --prepare change / refresh--> processing

Analysis results (crawled_data, completed/failed) are written back by the
external analysis function, not by this module.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sajang_api.config import env
from sajang_api.context import place_id_var
from sajang_api.crawl.firecrawl import CrawlError, FirecrawlClient, get_firecrawl_client
from sajang_api.crawl.naver import extract_naver_place_id, standardized_place_url
from sajang_api.db.models import Place, PlaceStatus, Profile
from sajang_api.db.repo_places import PlaceRepository
from sajang_api.db.repo_profiles import ProfileRepository
from sajang_api.db.session import get_db
from sajang_api.entitlement import (
    ChangeEntitlement,
    change_info,
    check_change_cooldown,
    check_refresh_allowance,
    check_register_quota,
)
from sajang_api.errors import (
    ConflictError,
    InvalidUrlError,
    NotFoundError,
    OwnershipError,
    UpstreamError,
    ValidationError,
)
from sajang_api.queue.analysis_dispatch import (
    AI_PROVIDER_ERROR_MESSAGE,
    AnalysisDispatchError,
    AnalysisInvoker,
    get_analysis_invoker,
)
from sajang_api.utils.time import utcnow

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "유효한 네이버 플레이스 URL이 아니거나, URL에서 장소 ID를 추출할 수 없습니다."
ALREADY_PROCESSING_MESSAGE = "해당 매장은 이미 처리 중입니다. 완료 후 다시 시도해주세요."
PLACE_NOT_FOUND_MESSAGE = "해당 매장을 찾을 수 없거나 접근 권한이 없습니다."
PROFILE_NOT_FOUND_MESSAGE = "사용자 프로필을 찾을 수 없습니다."


@dataclass
class RegisterOutcome:
    place_id: str
    naver_place_id: str
    status: str
    is_new: bool
    message: str
    http_status: int
    content_last_changed_at: Optional[datetime] = None
    is_ai_provider_error: Optional[bool] = None


@dataclass
class ChangeOutcome:
    place_id: str
    naver_place_id: str
    status: str
    message: str


@dataclass
class CompleteChangeOutcome:
    remaining_place_changes: int
    next_place_change_date: Optional[datetime]
    first_place_change_used: bool
    message: str = "매장 변경이 완료되었습니다."


@dataclass
class RefreshOutcome:
    success: bool
    message: str
    remaining_refreshes: int
    http_status: int


@dataclass
class PlaceListing:
    profile: Profile
    used_places: int
    places: list[Place]
    copies_count: dict[str, int] = field(default_factory=dict)
    change_info: Optional[ChangeEntitlement] = None


class PlaceLifecycle:
    """Orchestrates the place lifecycle for one request."""

    def __init__(
        self,
        db: Session,
        crawler: FirecrawlClient,
        invoker: AnalysisInvoker,
        *,
        change_cooldown: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.places = PlaceRepository(db)
        self.profiles = ProfileRepository(db)
        self.crawler = crawler
        self.invoker = invoker
        self.change_cooldown = change_cooldown if change_cooldown is not None else env.get_place_change_cooldown()
        self.clock = clock

    # ========================================================================
    # Helpers
    # ========================================================================

    def _require_profile(self, user_id: str, message: str = PROFILE_NOT_FOUND_MESSAGE) -> Profile:
        profile = self.profiles.get(user_id)
        if profile is None:
            raise NotFoundError(message)
        return profile

    def _require_owned_place(self, place_pk_id: str, user_id: str) -> Place:
        place = self.places.get_owned(place_pk_id, user_id)
        if place is None:
            raise NotFoundError(PLACE_NOT_FOUND_MESSAGE)
        return place

    @staticmethod
    def _parse_place_url(url: Optional[str]) -> str:
        naver_place_id = extract_naver_place_id(url)
        if not naver_place_id:
            raise InvalidUrlError(INVALID_URL_MESSAGE)
        return naver_place_id

    @staticmethod
    def _existing_outcome(place: Place) -> RegisterOutcome:
        if place.status == PlaceStatus.PROCESSING:
            message = "해당 매장은 현재 처리 중입니다. 잠시 후 다시 확인해주세요."
        else:
            message = f"이미 등록된 매장입니다. 현재 상태: {place.status}"
        return RegisterOutcome(
            place_id=place.id,
            naver_place_id=place.place_id,
            status=place.status,
            is_new=False,
            message=message,
            http_status=200,
            content_last_changed_at=place.content_last_changed_at,
        )

    # ========================================================================
    # Register
    # ========================================================================

    async def register_or_get(self, url: Optional[str], user_id: str) -> RegisterOutcome:
        """Register a Naver place for user_id, or return the existing one.

        An existing (user, Naver id) row is returned as-is without re-crawl.
        A new row is created in processing state, crawled synchronously and
        handed to the analysis function.

        Raises:
            ValidationError: Missing or unparseable URL
            NotFoundError: No profile for user_id
            EntitlementError: Place quota used up (no row created)
            UpstreamError: Crawl failed (row left failed)
        """
        if not url:
            raise ValidationError("URL이 필요합니다.")
        naver_place_id = self._parse_place_url(url)

        profile = self._require_profile(user_id)

        existing = self.places.find_by_naver_id(user_id, naver_place_id)
        if existing is not None:
            logger.info(
                "Existing place returned",
                extra={"event": "place.register.existing", "place_id": existing.id, "status": existing.status},
            )
            return self._existing_outcome(existing)

        active_count = self.places.count_active(user_id)
        violation = check_register_quota(profile, active_count)
        if violation is not None:
            logger.warning(
                "Place quota exceeded",
                extra={
                    "event": "place.register.limit_exceeded",
                    "max_places": profile.max_places,
                    "used_places": active_count,
                },
            )
            raise violation

        place_url = standardized_place_url(naver_place_id)
        try:
            place = self.places.create_processing(user_id, naver_place_id, place_url)
        except IntegrityError:
            # Concurrent registration of the same place won the insert
            existing = self.places.find_by_naver_id(user_id, naver_place_id)
            if existing is None:
                raise
            return self._existing_outcome(existing)

        place_pk_id = place.id
        place_id_var.set(place_pk_id)
        logger.info(
            "Place registered, crawling",
            extra={"event": "place.register.created", "naver_place_id": naver_place_id},
        )

        try:
            crawl = await self.crawler.scrape(place_url)
        except CrawlError as e:
            logger.error(
                "Crawl failed during registration",
                extra={"event": "place.register.crawl_failed", "error": str(e)[:500]},
            )
            self.places.mark_failed(place_pk_id, f"데이터 수집 오류: {e}")
            raise UpstreamError("URL에서 정보를 가져오는 중 오류가 발생했습니다.") from e

        try:
            self.invoker.dispatch(place_pk_id, crawl.markdown, crawl.metadata)
        except AnalysisDispatchError as e:
            self.places.mark_failed(place_pk_id, e.user_message)
            if e.is_ai_provider_error:
                message = AI_PROVIDER_ERROR_MESSAGE
            else:
                message = (
                    "매장 등록은 완료되었으나 AI 분석 중 오류가 발생했습니다. "
                    "My 플레이스에서 확인 후 필요시 삭제하고 다시 시도해주세요."
                )
            return RegisterOutcome(
                place_id=place_pk_id,
                naver_place_id=naver_place_id,
                status=PlaceStatus.FAILED,
                is_new=True,
                message=message,
                http_status=202,
                is_ai_provider_error=e.is_ai_provider_error,
            )

        return RegisterOutcome(
            place_id=place_pk_id,
            naver_place_id=naver_place_id,
            status=PlaceStatus.PROCESSING,
            is_new=True,
            message=(
                "매장 정보 수집 요청이 접수되었으며, AI 분석이 백그라운드에서 진행됩니다. "
                "잠시 후 'My 플레이스' 메뉴에서 확인해주세요."
            ),
            http_status=202,
        )

    # ========================================================================
    # Change (two-phase)
    # ========================================================================

    async def prepare_change(
        self, place_pk_id: Optional[str], new_place_url: Optional[str], user_id: str
    ) -> ChangeOutcome:
        """Phase 1: point the place at a new Naver place and start analysis.

        The change allowance is not consumed here; complete_change does that
        once the new analysis has completed.

        Raises:
            ValidationError: Missing input, bad URL, or place already processing
            NotFoundError: Place not owned by user_id / profile missing
            EntitlementError: Change cooldown active
            ConflictError: Target already registered, or lost the processing claim
            UpstreamError: Crawl or dispatch failed (place left failed)
        """
        if not place_pk_id or not new_place_url:
            raise ValidationError("필수 정보가 누락되었습니다.")
        new_naver_place_id = self._parse_place_url(new_place_url)

        place = self._require_owned_place(place_pk_id, user_id)
        place_id_var.set(place.id)
        if place.status == PlaceStatus.PROCESSING:
            raise ValidationError(ALREADY_PROCESSING_MESSAGE, error_code="ALREADY_PROCESSING")

        profile = self._require_profile(user_id, "사용자 정보를 찾을 수 없습니다.")
        now = self.clock()
        violation = check_change_cooldown(profile, now)
        if violation is not None:
            raise violation

        duplicate = self.places.find_by_naver_id(user_id, new_naver_place_id)
        if duplicate is not None and duplicate.id != place.id:
            raise ConflictError("이미 등록된 매장입니다.", error_code="DUPLICATE_PLACE")

        new_url = standardized_place_url(new_naver_place_id)
        if not self.profiles.prepare_place_change(user_id, place_pk_id, new_naver_place_id, new_url, now):
            raise ConflictError(ALREADY_PROCESSING_MESSAGE, error_code="ALREADY_PROCESSING")

        logger.info(
            "Place change prepared",
            extra={"event": "place.change.prepared", "naver_place_id": new_naver_place_id},
        )

        try:
            crawl = await self.crawler.scrape(new_url)
        except CrawlError as e:
            logger.error(
                "Crawl failed during place change",
                extra={"event": "place.change.crawl_failed", "error": str(e)[:500]},
            )
            self.places.mark_failed(place_pk_id, f"데이터 수집 오류: {e}")
            raise UpstreamError("매장 정보 수집 중 오류가 발생했습니다.") from e

        try:
            self.invoker.dispatch(place_pk_id, crawl.markdown, crawl.metadata)
        except AnalysisDispatchError as e:
            self.places.mark_failed(place_pk_id, e.user_message)
            raise UpstreamError(
                "매장 정보 분석 시작 중 내부 오류가 발생했습니다. 다시 시도해주세요."
            ) from e

        return ChangeOutcome(
            place_id=place_pk_id,
            naver_place_id=new_naver_place_id,
            status=PlaceStatus.PROCESSING,
            message="매장 변경이 준비되었습니다. 데이터 처리가 진행 중입니다.",
        )

    def complete_change(
        self, place_pk_id: Optional[str], is_first_change: bool, user_id: str
    ) -> CompleteChangeOutcome:
        """Phase 2: consume the change allowance after analysis completed.

        is_first_change from the client is only logged; which allowance is
        spent is decided from the profile row.

        Raises:
            ValidationError: Missing input or place not completed yet (no mutation)
            NotFoundError: Place not owned by user_id
            ConflictError: No pending change to complete
        """
        if not place_pk_id:
            raise ValidationError("필수 정보가 누락되었습니다.")

        place = self._require_owned_place(place_pk_id, user_id)
        place_id_var.set(place.id)
        if place.status != PlaceStatus.COMPLETED:
            raise ValidationError(
                "매장 정보 처리가 아직 완료되지 않았습니다. 잠시 후 다시 시도해주세요.",
                error_code="PLACE_NOT_READY",
            )
        if place.pending_change_at is None:
            raise ConflictError("완료할 매장 변경 요청이 없습니다.", error_code="NO_PENDING_CHANGE")

        profile = self.profiles.complete_place_change(
            user_id, place_pk_id, self.change_cooldown, self.clock()
        )
        if profile is None:
            raise ConflictError("완료할 매장 변경 요청이 없습니다.", error_code="NO_PENDING_CHANGE")

        logger.info(
            "Place change completed",
            extra={
                "event": "place.change.completed",
                "is_first_change": bool(is_first_change),
                "first_place_change_used": profile.first_place_change_used,
                "remaining_place_changes": profile.remaining_place_changes,
            },
        )
        return CompleteChangeOutcome(
            remaining_place_changes=profile.remaining_place_changes,
            next_place_change_date=profile.next_place_change_date,
            first_place_change_used=profile.first_place_change_used,
        )

    # ========================================================================
    # Refresh
    # ========================================================================

    async def refresh(self, place_pk_id: Optional[str], user_id: str) -> RefreshOutcome:
        """Re-crawl and re-analyse an existing place.

        Failures leave the place completed (its previous analysis stays
        usable) with error_message set, and do not consume a refresh.

        Raises:
            ValidationError: Missing place id
            OwnershipError: Place missing or owned by someone else
            EntitlementError: Free tier or no refreshes left today
            ConflictError: Place already processing
            UpstreamError: Crawl failed
        """
        if not place_pk_id:
            raise ValidationError("매장 ID가 필요합니다.")

        place = self.places.get(place_pk_id)
        if place is None or place.user_id != user_id:
            raise OwnershipError("매장 정보를 찾을 수 없습니다.")
        place_id_var.set(place.id)

        profile = self._require_profile(user_id)
        violation = check_refresh_allowance(profile, place)
        if violation is not None:
            raise violation

        remaining = place.remaining_refreshes
        naver_place_id = place.place_id
        place_name = place.place_name

        if not self.places.claim_processing(place_pk_id, error_message=None):
            raise ConflictError(ALREADY_PROCESSING_MESSAGE, error_code="ALREADY_PROCESSING")

        try:
            crawl = await self.crawler.scrape(standardized_place_url(naver_place_id))
        except CrawlError as e:
            logger.error(
                "Crawl failed during refresh",
                extra={"event": "place.refresh.crawl_failed", "error": str(e)[:500]},
            )
            stored = f"매장 정보 새로고침 중 오류: {e}"
            self.places.mark_completed_with_error(place_pk_id, stored)
            self.places.log_refresh(place_pk_id, user_id, is_successful=False, error_message=stored)
            raise UpstreamError(
                "매장 정보 새로고침 중 오류가 발생했습니다.",
                extras={"remainingRefreshes": remaining},
            ) from e

        self.places.touch_crawled(place_pk_id, self.clock())

        try:
            self.invoker.dispatch(place_pk_id, crawl.markdown, crawl.metadata, is_refresh=True)
        except AnalysisDispatchError as e:
            self.places.mark_completed_with_error(place_pk_id, e.user_message)
            self.places.log_refresh(place_pk_id, user_id, is_successful=False, error_message=e.user_message)
            if e.is_ai_provider_error:
                message = AI_PROVIDER_ERROR_MESSAGE
            else:
                message = "매장 정보 수집은 완료되었으나 AI 분석 중 오류가 발생했습니다."
            return RefreshOutcome(
                success=False, message=message, remaining_refreshes=remaining, http_status=202
            )

        remaining_after = self.places.decrement_refreshes(place_pk_id)
        self.places.log_refresh(place_pk_id, user_id, is_successful=True)
        logger.info(
            "Place refresh dispatched",
            extra={"event": "place.refresh.dispatched", "remaining_refreshes": remaining_after},
        )
        return RefreshOutcome(
            success=True,
            message=f"{place_name} 매장 정보 새로고침을 완료했습니다.",
            remaining_refreshes=remaining_after,
            http_status=200,
        )

    # ========================================================================
    # Delete / list
    # ========================================================================

    def delete(self, place_pk_id: str, user_id: str) -> int:
        """Delete a place and its generated copies.

        Deletion counts as a change for cooldown purposes.

        Returns:
            Number of generated copies deleted

        Raises:
            NotFoundError: Place not owned by user_id / profile missing
            EntitlementError: Change cooldown active
        """
        place = self._require_owned_place(place_pk_id, user_id)
        place_id_var.set(place.id)
        profile = self._require_profile(user_id)

        violation = check_change_cooldown(profile, self.clock())
        if violation is not None:
            raise violation

        copies_deleted = self.places.delete_with_copies(place_pk_id)
        logger.info(
            "Place deleted",
            extra={"event": "place.deleted", "copies_deleted": copies_deleted},
        )
        return copies_deleted

    def list_places(self, user_id: str) -> PlaceListing:
        profile = self._require_profile(user_id)
        return PlaceListing(
            profile=profile,
            used_places=self.places.count_active(user_id),
            places=self.places.list_for_user(user_id),
            copies_count=self.places.copies_count_by_place(user_id),
            change_info=change_info(profile, self.clock()),
        )


def get_place_lifecycle(
    db: Session = Depends(get_db),
    crawler: FirecrawlClient = Depends(get_firecrawl_client),
    invoker: AnalysisInvoker = Depends(get_analysis_invoker),
) -> PlaceLifecycle:
    """FastAPI dependency: orchestrator bound to this request's session and clients."""
    return PlaceLifecycle(db, crawler, invoker)
