"""Error responses follow RFC 9457 Problem Details with error/errorCode.

- Content-Type: application/problem+json
- Required fields: type, title, status, detail, instance
- "error" mirrors the user-facing message
- instance is an opaque trace URN derived from X-Request-ID
"""

import re
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from sajang_api.main import app


def assert_problem_details(resp, expected_status: int):
    content_type = resp.headers.get("content-type", "")
    assert content_type.startswith("application/problem+json"), content_type

    data = resp.json()
    for field in ["type", "title", "status", "detail", "instance"]:
        assert field in data, f"Missing required field: {field}"
    assert data["status"] == expected_status
    assert re.match(r"^urn:sajangnote:trace:[A-Za-z0-9._:-]{8,}$", data["instance"]), data["instance"]
    return data


class TestProblemDetails:
    def test_401_without_bearer(self, anonymous_client):
        response = anonymous_client.get("/my-places")

        assert response.status_code == 401
        data = assert_problem_details(response, 401)
        assert data["error"] == "로그인이 필요합니다."
        assert data["type"] == "urn:sajangnote:problem:unauthorized"

    def test_401_when_supabase_rejects_token(self, anonymous_client):
        supabase = MagicMock()
        supabase.auth.get_user.side_effect = RuntimeError("invalid JWT: token is expired")

        with patch("sajang_api.auth.session_auth.get_supabase_client", return_value=supabase):
            response = anonymous_client.get(
                "/my-places", headers={"Authorization": "Bearer expired.jwt.token"}
            )

        data = assert_problem_details(response, 401)
        assert data["error"] == "유효하지 않은 인증 정보입니다. 다시 로그인해주세요."
        supabase.auth.get_user.assert_called_once_with("expired.jwt.token")

    def test_valid_session_reaches_handler(self, anonymous_client, make_profile):
        make_profile("user-abc")
        supabase = MagicMock()
        supabase.auth.get_user.return_value.user.id = "user-abc"
        supabase.auth.get_user.return_value.user.email = "owner@example.com"

        with patch("sajang_api.auth.session_auth.get_supabase_client", return_value=supabase):
            response = anonymous_client.get("/my-places", headers={"Authorization": "Bearer good.jwt"})

        assert response.status_code == 200
        assert response.json()["places"] == []

    def test_instance_uses_request_id(self, anonymous_client):
        response = anonymous_client.get("/my-places", headers={"X-Request-ID": "req-12345678"})

        assert response.headers["X-Request-ID"] == "req-12345678"
        assert response.json()["instance"] == "urn:sajangnote:trace:req-12345678"

    def test_404_unknown_route(self, anonymous_client):
        response = anonymous_client.get("/does-not-exist")

        assert_problem_details(response, 404)

    def test_422_malformed_body(self, test_client):
        response = test_client.post(
            "/places/register-or-get",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        data = assert_problem_details(response, 422)
        assert data["detail"].startswith("Invalid field")

    def test_unhandled_exception_returns_generic_500(self, test_client, crawler, make_profile):
        make_profile()
        crawler.scrape.side_effect = RuntimeError("connection pool exhausted")
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(
            "/places/register-or-get",
            json={"url": "https://m.place.naver.com/restaurant/1234567"},
        )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "요청 처리 중 오류가 발생했습니다."
        assert "connection pool" not in response.text


class TestHealth:
    def test_health_always_200(self, anonymous_client):
        with patch("sajang_api.routers.health.check_database", return_value="down: unreachable"):
            response = anonymous_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readyz_503_when_dependency_down(self, anonymous_client, monkeypatch):
        monkeypatch.delenv("FIRECRAWL_API_KEY", raising=False)
        with patch("sajang_api.routers.health.check_database", return_value="up"):
            response = anonymous_client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["services"]["firecrawl"].startswith("down")

    def test_readyz_ready(self, anonymous_client, monkeypatch):
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-test")
        with patch("sajang_api.routers.health.check_database", return_value="up"):
            response = anonymous_client.get("/readyz")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"
