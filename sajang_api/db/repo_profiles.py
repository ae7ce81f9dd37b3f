"""Repository for profiles and the two-phase place change transactions."""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import null, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sajang_api.db.models import Place, PlaceStatus, Profile, SubscriptionStatus
from sajang_api.db.repo_places import PLACEHOLDER_PLACE_NAME
from sajang_api.utils.time import utcnow


class ProfileRepository:
    """Data access for profiles."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[Profile]:
        return self.db.get(Profile, user_id)

    def prepare_place_change(
        self,
        user_id: str,
        place_pk_id: str,
        new_naver_place_id: str,
        new_place_url: str,
        now: Optional[datetime] = None,
    ) -> bool:
        """Phase 1 of a place change.

        Claims the place (status -> processing), points it at the new Naver
        place and resets the crawled fields of the previous store, all in a
        single UPDATE guarded by status != processing. The change allowance is
        not touched here.

        Returns:
            True if the place was claimed, False if it is already processing
        """
        now = now or utcnow()
        try:
            result = self.db.execute(
                update(Place)
                .where(
                    Place.id == place_pk_id,
                    Place.user_id == user_id,
                    Place.status != PlaceStatus.PROCESSING,
                )
                .values(
                    place_id=new_naver_place_id,
                    place_url=new_place_url,
                    place_name=PLACEHOLDER_PLACE_NAME,
                    place_address=None,
                    place_image_url=None,
                    crawled_data=null(),
                    last_crawled_at=None,
                    content_last_changed_at=None,
                    status=PlaceStatus.PROCESSING,
                    error_message=None,
                    pending_change_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return False
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return True

    def complete_place_change(
        self,
        user_id: str,
        place_pk_id: str,
        cooldown: timedelta,
        now: Optional[datetime] = None,
    ) -> Optional[Profile]:
        """Phase 2 of a place change: consume the allowance.

        Runs only against a completed place with a pending change. The profile
        row decides which allowance is spent: while first_place_change_used is
        False the change consumes it, otherwise remaining_place_changes is
        decremented (floor 0). Either way the cooldown restarts.

        Returns:
            Updated profile, or None if the place no longer qualifies
        """
        now = now or utcnow()
        try:
            place = (
                self.db.query(Place)
                .filter(
                    Place.id == place_pk_id,
                    Place.user_id == user_id,
                    Place.status == PlaceStatus.COMPLETED,
                    Place.pending_change_at.isnot(None),
                )
                .with_for_update()
                .first()
            )
            profile = (
                self.db.query(Profile).filter(Profile.id == user_id).with_for_update().first()
            )
            if place is None or profile is None:
                self.db.rollback()
                return None

            if not profile.first_place_change_used:
                profile.first_place_change_used = True
            else:
                profile.remaining_place_changes = max(0, (profile.remaining_place_changes or 0) - 1)
            profile.next_place_change_date = now + cooldown
            profile.updated_at = now
            place.pending_change_at = None
            place.updated_at = now
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(profile)
        return profile

    def cancel_subscription(self, user_id: str) -> None:
        self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(
                subscription_status=SubscriptionStatus.CANCELED,
                billing_id=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
