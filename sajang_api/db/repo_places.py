"""Repository for places, generated copies and refresh logs.

State transitions that can race (claim for processing) are compare-and-swap
UPDATEs: the caller learns whether it won from the affected row count.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sajang_api.db.models import (
    AIGeneratedCopy,
    Place,
    PlaceRefreshLog,
    PlaceStatus,
    Profile,
    SubscriptionStatus,
    SubscriptionTier,
)
from sajang_api.utils.time import utcnow

logger = logging.getLogger(__name__)

ERROR_MESSAGE_MAX_LENGTH = 255
PLACEHOLDER_PLACE_NAME = "준비 중"


def truncate_error_message(message: Optional[str]) -> Optional[str]:
    """Clip a stored error message to the column budget (255 chars)."""
    if message is None:
        return None
    return message[:ERROR_MESSAGE_MAX_LENGTH]


class PlaceRepository:
    """Data access for places and their dependents."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, place_pk_id: str) -> Optional[Place]:
        return self.db.get(Place, place_pk_id)

    def get_owned(self, place_pk_id: str, user_id: str) -> Optional[Place]:
        """Get place only if it belongs to user_id."""
        return (
            self.db.query(Place)
            .filter(Place.id == place_pk_id, Place.user_id == user_id)
            .first()
        )

    def find_by_naver_id(self, user_id: str, naver_place_id: str) -> Optional[Place]:
        return (
            self.db.query(Place)
            .filter(Place.user_id == user_id, Place.place_id == naver_place_id)
            .first()
        )

    def count_active(self, user_id: str) -> int:
        """Places that count against max_places (everything except failed)."""
        return (
            self.db.query(func.count(Place.id))
            .filter(Place.user_id == user_id, Place.status != PlaceStatus.FAILED)
            .scalar()
        ) or 0

    def list_for_user(self, user_id: str) -> list[Place]:
        """All places of user_id, newest first."""
        return (
            self.db.query(Place)
            .filter(Place.user_id == user_id)
            .order_by(Place.created_at.desc())
            .all()
        )

    def copies_count_by_place(self, user_id: str) -> dict[str, int]:
        rows = (
            self.db.query(AIGeneratedCopy.place_id, func.count(AIGeneratedCopy.id))
            .filter(AIGeneratedCopy.user_id == user_id)
            .group_by(AIGeneratedCopy.place_id)
            .all()
        )
        return {place_id: count for place_id, count in rows}

    def create_processing(self, user_id: str, naver_place_id: str, place_url: str) -> Place:
        """Insert a new place in processing state.

        Raises:
            IntegrityError: (user_id, place_id) already registered (session rolled back)
        """
        now = utcnow()
        place = Place(
            user_id=user_id,
            place_id=naver_place_id,
            place_url=place_url,
            place_name=PLACEHOLDER_PLACE_NAME,
            status=PlaceStatus.PROCESSING,
            crawled_data=None,
            created_at=now,
            updated_at=now,
        )
        self.db.add(place)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(place)
        return place

    def claim_processing(self, place_pk_id: str, **values: Any) -> bool:
        """Atomically move a place into processing.

        UPDATE places SET status='processing', ... WHERE id=? AND status!='processing'

        Returns:
            True if this caller won the claim, False if the place is already
            processing (or gone)
        """
        values.setdefault("updated_at", utcnow())
        result = self.db.execute(
            update(Place)
            .where(Place.id == place_pk_id, Place.status != PlaceStatus.PROCESSING)
            .values(status=PlaceStatus.PROCESSING, **values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def _set(self, place_pk_id: str, **values: Any) -> None:
        values.setdefault("updated_at", utcnow())
        self.db.execute(
            update(Place)
            .where(Place.id == place_pk_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def mark_failed(self, place_pk_id: str, message: str) -> None:
        self._set(
            place_pk_id,
            status=PlaceStatus.FAILED,
            error_message=truncate_error_message(message),
        )

    def mark_completed_with_error(self, place_pk_id: str, message: str) -> None:
        """Refresh failure: previous analysis stays valid, error is surfaced."""
        self._set(
            place_pk_id,
            status=PlaceStatus.COMPLETED,
            error_message=truncate_error_message(message),
        )

    def touch_crawled(self, place_pk_id: str, crawled_at: datetime) -> None:
        self._set(place_pk_id, last_crawled_at=crawled_at)

    def decrement_refreshes(self, place_pk_id: str) -> int:
        """Decrement remaining_refreshes (floor 0) and return the new value."""
        self.db.execute(
            update(Place)
            .where(Place.id == place_pk_id, Place.remaining_refreshes > 0)
            .values(
                remaining_refreshes=Place.remaining_refreshes - 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        remaining = self.db.execute(
            select(Place.remaining_refreshes).where(Place.id == place_pk_id)
        ).scalar()
        return remaining or 0

    def log_refresh(
        self,
        place_pk_id: str,
        user_id: str,
        *,
        is_successful: bool,
        error_message: Optional[str] = None,
    ) -> None:
        self.db.add(
            PlaceRefreshLog(
                place_id=place_pk_id,
                user_id=user_id,
                refreshed_at=utcnow(),
                is_successful=is_successful,
                error_message=truncate_error_message(error_message),
            )
        )
        self.db.commit()

    def delete_with_copies(self, place_pk_id: str) -> int:
        """Delete a place and its generated copies in one transaction.

        Returns:
            Number of copies deleted
        """
        try:
            copies_deleted = (
                self.db.query(AIGeneratedCopy)
                .filter(AIGeneratedCopy.place_id == place_pk_id)
                .delete(synchronize_session=False)
            )
            self.db.query(Place).filter(Place.id == place_pk_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return copies_deleted

    def reset_daily_refreshes(self, allowance: int) -> int:
        """Reset remaining_refreshes for places of active paying subscribers.

        Returns:
            Number of places updated
        """
        paying_users = select(Profile.id).where(
            Profile.subscription_tier != SubscriptionTier.FREE,
            Profile.subscription_status == SubscriptionStatus.ACTIVE,
        )
        result = self.db.execute(
            update(Place)
            .where(Place.user_id.in_(paying_users))
            .values(remaining_refreshes=allowance, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.info(
            "Daily refresh allowance reset",
            extra={"event": "places.refresh.daily_reset", "updated": result.rowcount, "allowance": allowance},
        )
        return result.rowcount
