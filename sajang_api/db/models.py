"""SQLAlchemy ORM Models for 사장노트."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BOOLEAN,
    INTEGER,
    JSON,
    TEXT,
    TIMESTAMP,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class PlaceStatus:
    """Values of places.status."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionTier:
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class SubscriptionStatus:
    ACTIVE = "active"
    CANCELED = "canceled"
    NONE = "none"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Profile(Base):
    """Per-user entitlement record (one row per Supabase auth user)."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)  # auth.users.id
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    subscription_tier: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=SubscriptionTier.FREE
    )
    subscription_status: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=SubscriptionStatus.NONE
    )
    billing_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)  # NicePay bid

    # Entitlements
    max_places: Mapped[int] = mapped_column(INTEGER, nullable=False, default=1)
    remaining_place_changes: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    first_place_change_used: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    next_place_change_date: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Place(Base):
    """Registered place - crawl/analysis state for one Naver place per user."""

    __tablename__ = "places"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)  # FK to profiles

    place_id: Mapped[str] = mapped_column(TEXT, nullable=False)  # Naver place id
    place_url: Mapped[str] = mapped_column(TEXT, nullable=False)
    place_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    place_address: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    place_image_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Written by the external AI analysis function
    crawled_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(TEXT, nullable=False)  # processing/completed/failed
    error_message: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)  # <= 255 chars

    remaining_refreshes: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)

    # Set by a prepared change, cleared when the change is completed
    pending_change_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    last_crawled_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    content_last_changed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "place_id", name="uq_places_user_naver_place"),
        Index("idx_places_user_created", "user_id", "created_at"),
    )


class AIGeneratedCopy(Base):
    """Marketing copy generated for a place (owned by the copy generator)."""

    __tablename__ = "ai_generated_copies"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    place_id: Mapped[str] = mapped_column(
        TEXT, ForeignKey("places.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    content: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_ai_generated_copies_place", "place_id"),)


class PlaceRefreshLog(Base):
    """Append-only record of every refresh attempt."""

    __tablename__ = "place_refresh_logs"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    place_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    refreshed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    is_successful: Mapped[bool] = mapped_column(BOOLEAN, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    __table_args__ = (Index("idx_place_refresh_logs_place", "place_id", "refreshed_at"),)
