"""Tests for POST /refresh-place and POST /cron/daily-refresh."""

from sajang_api.crawl.firecrawl import CrawlError
from sajang_api.db.models import Place, PlaceRefreshLog, PlaceStatus, SubscriptionStatus, SubscriptionTier
from sajang_api.queue.analysis_dispatch import AnalysisDispatchError

from tests.conftest import OTHER_USER_ID

STANDARD_URL = "https://m.place.naver.com/restaurant/1234567/home"


def _paying_profile(make_profile, **overrides):
    values = {
        "subscription_tier": SubscriptionTier.BASIC,
        "subscription_status": SubscriptionStatus.ACTIVE,
    }
    values.update(overrides)
    return make_profile(**values)


def _logs(db_session, place_pk: str) -> list[PlaceRefreshLog]:
    return db_session.query(PlaceRefreshLog).filter(PlaceRefreshLog.place_id == place_pk).all()


class TestRefreshPlace:
    def test_successful_refresh_consumes_one(self, test_client, db_session, make_profile, make_place, crawler, invoker):
        _paying_profile(make_profile)
        place = make_place("1234567", remaining_refreshes=3, error_message="이전 오류")
        place_pk = place.id

        response = test_client.post("/refresh-place", json={"placeId": place_pk})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["remainingRefreshes"] == 2
        assert "맛있는 식당" in data["message"]

        crawler.scrape.assert_awaited_once_with(STANDARD_URL)
        args, kwargs = invoker.dispatch.call_args
        assert args[0] == place_pk
        assert kwargs == {"is_refresh": True}

        db_session.expire_all()
        stored = db_session.get(Place, place_pk)
        assert stored.remaining_refreshes == 2
        assert stored.status == PlaceStatus.PROCESSING
        assert stored.error_message is None
        assert stored.last_crawled_at is not None
        assert [log.is_successful for log in _logs(db_session, place_pk)] == [True]

    def test_free_tier_requires_subscription(self, test_client, db_session, make_profile, make_place, crawler):
        make_profile(subscription_tier=SubscriptionTier.FREE)
        place = make_place("1234567", remaining_refreshes=3)

        response = test_client.post("/refresh-place", json={"placeId": place.id})

        assert response.status_code == 403
        assert response.json()["errorCode"] == "SUBSCRIPTION_REQUIRED"
        crawler.scrape.assert_not_awaited()
        assert _logs(db_session, place.id) == []

    def test_no_refreshes_left(self, test_client, make_profile, make_place, crawler):
        _paying_profile(make_profile)
        place = make_place("1234567", remaining_refreshes=0)

        response = test_client.post("/refresh-place", json={"placeId": place.id})

        assert response.status_code == 403
        data = response.json()
        assert data["errorCode"] == "REFRESH_LIMIT_EXCEEDED"
        assert data["remainingRefreshes"] == 0
        crawler.scrape.assert_not_awaited()

    def test_foreign_place_is_not_found(self, test_client, make_profile, make_place):
        _paying_profile(make_profile)
        make_profile(OTHER_USER_ID)
        place = make_place("1234567", user_id=OTHER_USER_ID, remaining_refreshes=3)

        response = test_client.post("/refresh-place", json={"placeId": place.id})

        assert response.status_code == 404

    def test_processing_place_conflicts(self, test_client, make_profile, make_place, crawler):
        _paying_profile(make_profile)
        place = make_place("1234567", status=PlaceStatus.PROCESSING, remaining_refreshes=3)

        response = test_client.post("/refresh-place", json={"placeId": place.id})

        assert response.status_code == 409
        crawler.scrape.assert_not_awaited()

    def test_crawl_failure_keeps_place_completed(self, test_client, db_session, make_profile, make_place, crawler):
        _paying_profile(make_profile)
        place = make_place("1234567", remaining_refreshes=3)
        place_pk = place.id
        crawler.scrape.side_effect = CrawlError("Firecrawl API 재시도 실패 (403): blocked")

        response = test_client.post("/refresh-place", json={"placeId": place_pk})

        assert response.status_code == 500
        assert response.json()["remainingRefreshes"] == 3

        db_session.expire_all()
        stored = db_session.get(Place, place_pk)
        assert stored.status == PlaceStatus.COMPLETED
        assert stored.remaining_refreshes == 3
        assert stored.error_message.startswith("매장 정보 새로고침 중 오류:")
        logs = _logs(db_session, place_pk)
        assert [log.is_successful for log in logs] == [False]

    def test_dispatch_failure_returns_202(self, test_client, db_session, make_profile, make_place, invoker):
        _paying_profile(make_profile)
        place = make_place("1234567", remaining_refreshes=1)
        place_pk = place.id
        invoker.dispatch.side_effect = AnalysisDispatchError("edge function 503")

        response = test_client.post("/refresh-place", json={"placeId": place_pk})

        assert response.status_code == 202
        data = response.json()
        assert data["success"] is False
        assert data["remainingRefreshes"] == 1

        db_session.expire_all()
        stored = db_session.get(Place, place_pk)
        assert stored.status == PlaceStatus.COMPLETED
        assert stored.remaining_refreshes == 1
        assert stored.last_crawled_at is not None
        assert [log.is_successful for log in _logs(db_session, place_pk)] == [False]

    def test_missing_place_id(self, test_client, make_profile):
        _paying_profile(make_profile)

        response = test_client.post("/refresh-place", json={})

        assert response.status_code == 400


class TestDailyRefreshCron:
    """POST /cron/daily-refresh resets allowances for paying subscribers only."""

    def test_requires_cron_secret(self, test_client, monkeypatch):
        monkeypatch.setenv("CRON_SECRET_KEY", "cron-secret")

        assert test_client.post("/cron/daily-refresh").status_code == 401
        response = test_client.post(
            "/cron/daily-refresh", headers={"Authorization": "Bearer wrong-secret"}
        )
        assert response.status_code == 401

    def test_unset_secret_rejects_everything(self, test_client, monkeypatch):
        monkeypatch.delenv("CRON_SECRET_KEY", raising=False)

        response = test_client.post("/cron/daily-refresh", headers={"Authorization": "Bearer "})

        assert response.status_code == 401

    def test_resets_paying_users_only(self, test_client, db_session, make_profile, make_place, monkeypatch):
        monkeypatch.setenv("CRON_SECRET_KEY", "cron-secret")
        monkeypatch.setenv("DAILY_REFRESH_ALLOWANCE", "3")
        _paying_profile(make_profile, user_id="paying")
        _paying_profile(make_profile, user_id="canceled", subscription_status=SubscriptionStatus.CANCELED)
        make_profile("free")
        paying = make_place("1", user_id="paying", remaining_refreshes=0)
        canceled = make_place("2", user_id="canceled", remaining_refreshes=0)
        free = make_place("3", user_id="free", remaining_refreshes=0)
        ids = {"paying": paying.id, "canceled": canceled.id, "free": free.id}

        response = test_client.post(
            "/cron/daily-refresh", headers={"Authorization": "Bearer cron-secret"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["updated_places"] == 1

        db_session.expire_all()
        assert db_session.get(Place, ids["paying"]).remaining_refreshes == 3
        assert db_session.get(Place, ids["canceled"]).remaining_refreshes == 0
        assert db_session.get(Place, ids["free"]).remaining_refreshes == 0
