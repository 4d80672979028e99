import time

import pytest
import requests
from jose import jwt

from basil.core.api_client import (
    ApiClient,
    ApiError,
    clean_params,
    detect_stack,
    is_token_error,
    join_url,
    normalize_endpoint,
    stack_base_url,
    token_is_expired,
)
from basil.core.config import FALLBACK_STACK_URLS, get_settings, refresh_settings


def make_token(seconds_valid=3600, **claims):
    payload = {"sub": "shop-owner@example.com", "exp": int(time.time()) + seconds_valid, **claims}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


class TestRouting:
    @pytest.mark.parametrize("endpoint,expected", [
        ("/shopkeeper/inventory", "/api/v1/shopkeeper/inventory"),
        ("shopkeeper/stores", "/api/v1/shopkeeper/stores"),
        ("/api/v1/admin/users", "/api/v1/admin/users"),
        ("/api/v2/health", "/api/v2/health"),
    ])
    def test_normalize_endpoint(self, endpoint, expected):
        assert normalize_endpoint(endpoint) == expected

    @pytest.mark.parametrize("endpoint,expected", [
        ("/api/v1/admin/tenants", "admin"),
        ("/admin", "admin"),
        ("/api/v1/jobcards/123", "jobcard"),
        ("/api/v1/shopkeeper/jobcard/list", "jobcard"),
        ("/api/v1/billing/plans", "billing"),
        ("/api/v1/shopkeeper/billing/invoices", "shopkeeper-inventory-billing"),
        ("/api/v1/shopkeeper/inventory/bulk-update", "shopkeeper-inventory-billing"),
        ("/api/v1/shopkeeper/credit-notes", "shopkeeper-inventory-billing"),
        ("/api/v1/shopkeeper/ai/chat", "shopkeeper-analytics"),
        ("/api/v1/shopkeeper/customers/42", "shopkeeper-analytics"),
        ("/api/v1/shopkeeper/scanned-bills", "shopkeeper-analytics"),
        ("/API/V1/SHOPKEEPER/REPORTS/gstr1", "shopkeeper-analytics"),
        ("/api/v1/shopkeeper/stores", "shopkeeper-core"),
        ("/shopkeeper", "shopkeeper-core"),
        ("/api/v1/auth/login", None),
    ])
    def test_detect_stack(self, endpoint, expected):
        assert detect_stack(endpoint) == expected

    def test_stack_urls_only_for_india(self):
        assert stack_base_url("admin", "NL") is None
        assert stack_base_url(None, "IN") is None
        assert stack_base_url("admin", "IN") == FALLBACK_STACK_URLS["admin"]

    def test_stack_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("BASIL_SHOPKEEPER_ANALYTICS_API_URL", "https://analytics.example.com/dev")
        refresh_settings()

        assert stack_base_url("shopkeeper-analytics", "IN") == "https://analytics.example.com/dev"
        assert get_settings().stack_url("admin") == FALLBACK_STACK_URLS["admin"]

    def test_join_url_does_not_double_prefix(self):
        assert join_url("http://localhost:8001/api/v1/", "/api/v1/shopkeeper") == "http://localhost:8001/api/v1/shopkeeper"
        assert join_url("https://x.example.com/dev", "/api/v1/shopkeeper") == "https://x.example.com/dev/api/v1/shopkeeper"

    def test_clean_params(self):
        params = {"limit": 100, "lastKey": "undefined", "search": "", "storeId": "s1", "endDate": None, "x": "null"}

        assert clean_params(params) == {"limit": "100", "storeId": "s1"}
        assert clean_params({"lastKey": None}) is None


class TestTokens:
    def test_expired(self):
        assert token_is_expired(make_token(seconds_valid=-60))
        assert not token_is_expired(make_token())

    def test_unreadable_token_left_to_server(self):
        assert not token_is_expired("not-a-jwt")

    @pytest.mark.parametrize("message,expected", [
        ("Invalid token: invalid signature", True),
        ("Invalid token (bad signature)", True),
        ("jwt expired", True),
        ("Token verification failed", True),
        ("Authentication token required", True),
        ("Access denied for this store", False),
        ("Forbidden", False),
    ])
    def test_is_token_error(self, message, expected):
        assert is_token_error(message) is expected


class TestRequests:
    def test_get_routes_to_stack(self, fake_session):
        fake_session.queue(json_data={"success": True, "data": {"data": []}})
        client = ApiClient(session=fake_session)

        client.get("/shopkeeper/inventory", params={"storeId": "s1", "lastKey": "undefined"})

        call = fake_session.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == FALLBACK_STACK_URLS["shopkeeper-inventory-billing"] + "/api/v1/shopkeeper/inventory"
        assert call["params"] == {"storeId": "s1"}
        assert call["headers"]["X-Country"] == "IN"
        assert "Content-Type" not in call["headers"]
        assert "Authorization" not in call["headers"]
        assert call["timeout"] == 30.0

    def test_post_sends_json_and_token(self, fake_session):
        token = make_token()
        fake_session.queue(json_data={"success": True, "data": {"id": "p1"}})
        client = ApiClient(session=fake_session, token=token)

        result = client.post("/shopkeeper/products", {"name": "Tea"})

        call = fake_session.calls[0]
        assert result["data"] == {"id": "p1"}
        assert call["json"] == {"name": "Tea"}
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["headers"]["Authorization"] == f"Bearer {token}"

    def test_expired_token_not_sent(self, fake_session):
        fake_session.queue(json_data={"success": True})
        client = ApiClient(session=fake_session, token=make_token(seconds_valid=-10))

        client.get("/shopkeeper/stores")

        assert "Authorization" not in fake_session.calls[0]["headers"]
        assert client.token is None

    def test_other_countries_use_region_endpoint(self, fake_session):
        fake_session.queue(json_data={"success": True})
        client = ApiClient(session=fake_session, country="nl")

        client.get("/shopkeeper/inventory")

        call = fake_session.calls[0]
        assert call["url"] == "http://localhost:8001/api/v1/shopkeeper/inventory"
        assert call["headers"]["X-Country"] == "NL"

    def test_fixed_base_url_skips_routing(self, fake_session):
        fake_session.queue(json_data={"success": True})
        client = ApiClient(base_url="https://api.example.com", session=fake_session)

        client.get("/admin/users")

        assert fake_session.calls[0]["url"] == "https://api.example.com/api/v1/admin/users"

    def test_legacy_url_does_not_disable_routing(self, monkeypatch):
        monkeypatch.setenv("BASIL_API_URL", "http://legacy/api/v1")
        refresh_settings()

        assert ApiClient(country="NL").get_base_url("/api/v1/shopkeeper/inventory") == "http://localhost:8001/api/v1"
        assert ApiClient().get_base_url("/api/v1/shopkeeper/inventory") == \
            FALLBACK_STACK_URLS["shopkeeper-inventory-billing"]
        assert ApiClient().get_base_url("/api/v1/auth/login") == "http://legacy/api/v1"

    def test_unrouted_endpoint_uses_region_endpoint(self, fake_session):
        fake_session.queue(json_data={"success": True})
        client = ApiClient(session=fake_session)

        client.post("/auth/login", {"email": "a@b.c"})

        assert fake_session.calls[0]["url"] == "http://localhost:8000/api/v1/auth/login"


class TestErrors:
    def test_timeout(self, fake_session):
        fake_session.fail_with(requests.exceptions.Timeout())
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores", timeout=5)

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.user_message() == "Request timed out. Please try again."

    def test_network_error(self, fake_session):
        fake_session.fail_with(requests.exceptions.ConnectionError("refused"))
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores")

        assert exc_info.value.code == "NETWORK_ERROR"
        assert exc_info.value.status is None

    def test_non_json_error_uses_text(self, fake_session):
        fake_session.queue(status_code=502, text="Bad Gateway", content_type="text/html")
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores")

        assert exc_info.value.status == 502
        assert exc_info.value.message == "Bad Gateway"

    def test_non_json_success_is_rejected(self, fake_session):
        fake_session.queue(status_code=200, text="<html>", content_type="text/html")
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError, match="Invalid response format") as exc_info:
            client.get("/shopkeeper/stores")

        assert exc_info.value.status is None
        assert exc_info.value.code == "INVALID_RESPONSE"

    def test_malformed_json_body(self, fake_session):
        fake_session.queue(status_code=200, json_data=None, text='{"success": tr', content_type="application/json")
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores")

        error = exc_info.value
        assert error.message == "Invalid response format"
        assert error.status is None
        assert error.details == {"upstreamStatus": 200}
        assert error.user_message() == "The server sent an unexpected response. Please try again."

    def test_error_message_from_body(self, fake_session):
        fake_session.queue(status_code=404, json_data={"error": "Store not found", "code": "NOT_FOUND"})
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores/x")

        error = exc_info.value
        assert error.message == "Store not found"
        assert error.user_message() == "Resource not found"
        assert not error.is_auth_error

    def test_definitive_token_error_clears_session(self, fake_session):
        fake_session.queue(status_code=401, json_data={"error": "jwt expired"})
        client = ApiClient(session=fake_session, token=make_token())

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores")

        assert exc_info.value.is_auth_error
        assert exc_info.value.message == "Your session has expired. Please log in again."
        assert client.token is None

    def test_permission_error_keeps_session(self, fake_session):
        token = make_token()
        fake_session.queue(status_code=403, json_data={"message": "Access denied for this store"})
        client = ApiClient(session=fake_session, token=token)

        with pytest.raises(ApiError) as exc_info:
            client.get("/shopkeeper/stores")

        assert not exc_info.value.is_auth_error
        assert exc_info.value.user_message() == "You do not have permission to perform this action"
        assert client.token == token

    def test_bad_credentials(self, fake_session):
        fake_session.queue(status_code=401, json_data={"error": "Invalid credentials"})
        client = ApiClient(session=fake_session)

        with pytest.raises(ApiError) as exc_info:
            client.post("/auth/login", {"email": "a@b.c", "password": "x"})

        assert exc_info.value.message.startswith("Invalid email or password")
        assert not exc_info.value.is_auth_error

    def test_user_message_fallback(self):
        assert ApiError("Something odd", status=418).user_message() == "Something odd"
        assert ApiError("", status=418).user_message() == "An error occurred"
