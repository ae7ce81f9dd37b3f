"""Pytest configuration and fixtures."""

import os

# Must be set before sajang_api.main is imported
os.environ.setdefault("SAJANG_JSON_LOGS", "false")

from datetime import datetime, timezone
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sajang_api.auth.session_auth import SessionAuthContext, get_session_auth_context
from sajang_api.crawl.firecrawl import CrawlResult, FirecrawlClient, get_firecrawl_client
from sajang_api.db.models import Base, Place, PlaceStatus, Profile, SubscriptionStatus, SubscriptionTier
from sajang_api.db.session import get_db
from sajang_api.main import app
from sajang_api.queue.analysis_dispatch import AnalysisInvoker, get_analysis_invoker

TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"

PLACE_MARKDOWN = "# 맛있는 식당\n\n서울시 강남구 테헤란로 1\n\n메뉴: 김치찌개 9,000원"
PLACE_METADATA = {"title": "맛있는 식당 : 네이버", "ogImage": "https://example.com/og.png"}


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def crawler() -> MagicMock:
    """Firecrawl client double; scrape() succeeds unless a test overrides it."""
    fake = MagicMock(spec=FirecrawlClient)
    fake.scrape = AsyncMock(return_value=CrawlResult(markdown=PLACE_MARKDOWN, metadata=PLACE_METADATA))
    return fake


@pytest.fixture
def invoker() -> MagicMock:
    """Analysis invoker double; dispatch() accepts unless a test sets side_effect."""
    return MagicMock(spec=AnalysisInvoker)


@pytest.fixture
def make_profile(db_session: Session) -> Callable[..., Profile]:
    """Factory for profiles (defaults: free tier, one place, wildcard unused)."""

    def _make(user_id: str = TEST_USER_ID, **overrides) -> Profile:
        values = {
            "id": user_id,
            "email": f"{user_id}@example.com",
            "subscription_tier": SubscriptionTier.FREE,
            "subscription_status": SubscriptionStatus.NONE,
            "max_places": 1,
            "remaining_place_changes": 0,
            "first_place_change_used": False,
        }
        values.update(overrides)
        profile = Profile(**values)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_place(db_session: Session) -> Callable[..., Place]:
    """Factory for places (defaults: completed, owned by TEST_USER_ID)."""

    def _make(naver_place_id: str = "1234567", user_id: str = TEST_USER_ID, **overrides) -> Place:
        now = datetime.now(timezone.utc)
        values = {
            "user_id": user_id,
            "place_id": naver_place_id,
            "place_url": f"https://m.place.naver.com/restaurant/{naver_place_id}/home",
            "place_name": "맛있는 식당",
            "status": PlaceStatus.COMPLETED,
            "remaining_refreshes": 0,
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        place = Place(**values)
        db_session.add(place)
        db_session.commit()
        db_session.refresh(place)
        return place

    return _make


@pytest.fixture
def test_client(db_session: Session, crawler: MagicMock, invoker: MagicMock):
    """TestClient authenticated as TEST_USER_ID with DB and upstreams overridden."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close - db_session fixture will handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_auth_context] = lambda: SessionAuthContext(
        user_id=TEST_USER_ID, email=f"{TEST_USER_ID}@example.com"
    )
    app.dependency_overrides[get_firecrawl_client] = lambda: crawler
    app.dependency_overrides[get_analysis_invoker] = lambda: invoker
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db_session: Session):
    """TestClient without an auth override (real bearer validation path)."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
