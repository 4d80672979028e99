# src/basil/core/api_client.py
"""
UPSTREAM API CLIENT WITH SPLIT-STACK ROUTING
- Maps logical endpoints to one of the backend API Gateway stacks
- Region-aware fallback for NL / DE
- Bearer token handling and structured API errors
"""

import time
import logging
from typing import Any, Dict, Optional

import requests
from jose import jwt
from jose.exceptions import JWTError

from basil.core.config import Settings, get_settings
from basil.core.region import DEFAULT_COUNTRY, get_api_endpoint, normalize_country

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ANALYTICS_MARKERS = (
    "/shopkeeper/ai",
    "/shopkeeper/crm",
    "/shopkeeper/customers",
    "/shopkeeper/reports",
    "/shopkeeper/download",
    "/shopkeeper/upload",
    "/shopkeeper/scanned-bills",
    "/shopkeeper/file-operations",
)

INVENTORY_BILLING_MARKERS = (
    "/shopkeeper/inventory",
    "/shopkeeper/products",
    "/shopkeeper/orders",
    "/shopkeeper/bills",
    "/shopkeeper/billing",
    "/shopkeeper/quotes",
    "/shopkeeper/credit-notes",
    "/shopkeeper/invoice-sharing",
)

# Messages that mean the JWT itself is bad, not that the endpoint refused us
TOKEN_ERROR_MARKERS = (
    "invalid token: invalid signature",
    "token verification failed",
    "token has expired",
    "jwt expired",
    "jwt malformed",
    "invalid signature",
    "authentication token required",
)

CREDENTIAL_ERROR_MARKERS = (
    "invalid credentials",
    "invalid password",
    "authentication failed",
)

USER_MESSAGES = {
    "401": "Please log in to continue",
    "403": "You do not have permission to perform this action",
    "404": "The requested resource was not found",
    "409": "This resource already exists",
    "500": "Server error. Please try again later",
    "503": "Service temporarily unavailable",
    "VALIDATION_ERROR": "Please check your input and try again",
    "UNAUTHORIZED": "Please log in to continue",
    "FORBIDDEN": "You do not have permission",
    "NOT_FOUND": "Resource not found",
    "TIMEOUT": "Request timed out. Please try again.",
    "NETWORK_ERROR": "Network error. Please check your connection.",
    "INVALID_RESPONSE": "The server sent an unexpected response. Please try again.",
}


class ApiError(Exception):
    """Error returned by (or while reaching) the upstream API."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None,
                 is_auth_error: bool = False, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.is_auth_error = is_auth_error
        self.details = details

    def user_message(self) -> str:
        """Friendly message for display."""
        for key in (self.code, str(self.status) if self.status else None):
            if key and key in USER_MESSAGES:
                return USER_MESSAGES[key]
        return self.message or "An error occurred"


def normalize_endpoint(endpoint: str) -> str:
    """Ensure the endpoint carries the /api/v1 prefix."""
    if endpoint.startswith(API_PREFIX) or endpoint.startswith("/api/"):
        return endpoint
    clean = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    return f"{API_PREFIX}{clean}"


def join_url(base_url: str, endpoint: str) -> str:
    """Base URL + normalized endpoint, without doubling /api/v1."""
    base = base_url.rstrip("/")
    if base.endswith(API_PREFIX) and endpoint.startswith(API_PREFIX + "/"):
        endpoint = endpoint[len(API_PREFIX):]
    return f"{base}{endpoint}"


def detect_stack(endpoint: str) -> Optional[str]:
    """Work out which backend stack serves an endpoint."""
    normalized = endpoint.lower()

    if "/admin/" in normalized or normalized.startswith("/admin"):
        return "admin"
    if "/jobcard" in normalized:
        return "jobcard"
    if ("/billing/" in normalized or normalized.startswith("/billing")) \
            and "/shopkeeper/billing" not in normalized:
        return "billing"

    if "/shopkeeper/" in normalized or normalized.startswith("/shopkeeper"):
        # Analytics first, its prefixes are the more specific ones
        if any(marker in normalized for marker in ANALYTICS_MARKERS):
            return "shopkeeper-analytics"
        if any(marker in normalized for marker in INVENTORY_BILLING_MARKERS):
            return "shopkeeper-inventory-billing"
        return "shopkeeper-core"

    return None


def stack_base_url(stack: Optional[str], country: str, settings: Optional[Settings] = None) -> Optional[str]:
    """
    Base URL for a stack. India runs split stacks; other countries use
    the single regional endpoint, signalled by returning None.
    """
    if not stack or country != "IN":
        return None
    settings = settings or get_settings()
    return settings.stack_url(stack)


def is_token_error(message: str) -> bool:
    lower = message.lower()
    if "invalid token" in lower and "signature" in lower:
        return True
    return any(marker in lower for marker in TOKEN_ERROR_MARKERS)


def token_is_expired(token: str, leeway: int = 0) -> bool:
    """
    Check the exp claim without verifying the signature.
    Tokens we cannot read are left for the server to judge.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) + leeway < time.time()
    except (TypeError, ValueError):
        return False


def clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Drop empty query parameters."""
    if not params:
        return None
    cleaned = {
        key: str(value) for key, value in params.items()
        if value is not None and str(value) not in ("", "undefined", "null")
    }
    return cleaned or None


class ApiClient:
    """HTTP client for the Basil backend."""

    def __init__(self, base_url: Optional[str] = None, country: str = DEFAULT_COUNTRY,
                 token: Optional[str] = None, settings: Optional[Settings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        # A fixed base URL disables stack routing (legacy single backend)
        self.base_url = base_url
        self.country = normalize_country(country) or DEFAULT_COUNTRY
        self.token = token
        self.session = session or requests.Session()

    def set_token(self, token: Optional[str]):
        self.token = token

    def get_base_url(self, endpoint: str) -> str:
        if self.base_url:
            return self.base_url

        stack = detect_stack(endpoint)
        url = stack_base_url(stack, self.country, self.settings)
        if url:
            logger.debug(f"[API Routing] Endpoint: {endpoint}, Stack: {stack}, Base URL: {url}")
            return url

        fallback = get_api_endpoint(self.country, self.settings)
        if stack and stack.startswith("shopkeeper-") and self.country == "IN":
            logger.warning(f"[API Routing] No URL for stack {stack}, using regional endpoint {fallback}")
        return fallback

    def _headers(self, extra: Optional[Dict[str, str]], has_body: bool) -> Dict[str, str]:
        headers = {"X-Country": self.country, "Accept": "application/json"}
        if extra:
            headers.update(extra)

        if self.token and token_is_expired(self.token):
            logger.info("Dropping expired access token before request")
            self.set_token(None)
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        # Content-Type only with a body, a bare GET must not trigger a preflight
        if has_body and not any(k.lower() == "content-type" for k in headers):
            headers["Content-Type"] = "application/json"
        return headers

    def request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None,
                json: Any = None, timeout: Optional[float] = None,
                headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Send a request and return the decoded response envelope.

        Raises:
            ApiError: on timeout, network failure or a non-2xx response
        """
        normalized = normalize_endpoint(endpoint)
        base_url = self.get_base_url(normalized)
        url = join_url(base_url, normalized)
        timeout = timeout or self.settings.request_timeout

        logger.debug(f"[API Request] {method} {url} (stack: {detect_stack(normalized)})")

        try:
            response = self.session.request(
                method,
                url,
                params=clean_params(params),
                json=json,
                headers=self._headers(headers, json is not None),
                timeout=timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"API timeout: {method} {normalized} after {timeout}s")
            raise ApiError(
                f"Request timeout. The request took longer than {timeout}s to complete. "
                f"Endpoint: {normalized} | Base URL: {base_url}",
                code="TIMEOUT",
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling {url}: {type(e).__name__}: {e}")
            raise ApiError(
                f"Unable to connect to the API server. Endpoint: {normalized} | "
                f"Base URL: {base_url} | Error: {e}",
                code="NETWORK_ERROR",
            ) from e

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            if not response.ok:
                raise ApiError(
                    response.text or f"Request failed with status {response.status_code}",
                    status=response.status_code,
                )
            raise ApiError("Invalid response format", code="INVALID_RESPONSE",
                           details={"upstreamStatus": response.status_code})

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Malformed JSON from {method} {normalized}: {e}")
            raise ApiError("Invalid response format", code="INVALID_RESPONSE",
                           details={"upstreamStatus": response.status_code}) from e
        if response.ok:
            return data

        raise self._error_from_response(response.status_code, data, normalized)

    def _error_from_response(self, status: int, data: Any, endpoint: str) -> ApiError:
        body = data if isinstance(data, dict) else {}
        message = body.get("error") or body.get("message") or f"Request failed with status {status}"
        is_auth_error = False

        if status in (401, 403):
            lower = message.lower()
            if any(marker in lower for marker in CREDENTIAL_ERROR_MARKERS):
                message = "Invalid email or password. Please check your credentials and try again."
            elif is_token_error(lower):
                logger.warning(f"Definitive token error on {endpoint}, clearing session")
                self.set_token(None)
                message = "Your session has expired. Please log in again."
                is_auth_error = True
            else:
                # Permission or endpoint problem, the session stays
                logger.warning(f"API returned {status} on {endpoint}: {message}")

        if status >= 500:
            logger.error(f"Server error {status} on {endpoint}: {message}")

        return ApiError(message, status=status, code=body.get("code"),
                        is_auth_error=is_auth_error, details=data)

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
        return self.request("GET", endpoint, params=params, **kwargs)

    def post(self, endpoint: str, body: Any = None, params: Optional[Dict[str, Any]] = None,
             **kwargs) -> Dict[str, Any]:
        return self.request("POST", endpoint, params=params, json=body, **kwargs)

    def put(self, endpoint: str, body: Any = None, **kwargs) -> Dict[str, Any]:
        return self.request("PUT", endpoint, json=body, **kwargs)
