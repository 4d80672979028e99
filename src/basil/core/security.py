# src/basil/core/security.py
"""
SECURITY MIDDLEWARE FOR RATE LIMITING AND SECURITY HEADERS
"""

import time
import threading
from typing import Dict, List
from fastapi import Request
from fastapi.middleware import Middleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
import logging

from basil.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/health",)


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Logs requests and adds security headers to every response.
    """

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        started = time.time()

        response = await call_next(request)

        elapsed_ms = (time.time() - started) * 1000
        if not any(request.url.path.startswith(path) for path in QUIET_PATHS):
            logger.info(
                f"Request: {request.method} {request.url.path} from {client_ip} "
                f"-> {response.status_code} ({elapsed_ms:.1f}ms)"
            )
        if response.status_code >= 500:
            logger.error(f"Request failed: {request.method} {request.url.path} -> {response.status_code}")

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP sliding window rate limit.
    """

    def __init__(self, app, max_requests: int = 200, window_seconds: int = 60):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests: Dict[str, List[float]] = {}
        self.lock = threading.Lock()
        self.last_sweep = time.time()

        self.excluded_paths = list(QUIET_PATHS)

    def _sweep(self, window_start: float):
        """Forget IPs with no request inside the window."""
        stale = [ip for ip, times in self.requests.items() if not times or times[-1] <= window_start]
        for ip in stale:
            del self.requests[ip]

    def allow(self, client_ip: str, now: float) -> bool:
        """Record a request from client_ip; False when over the limit."""
        with self.lock:
            window_start = now - self.window_seconds

            if now - self.last_sweep >= self.window_seconds:
                self._sweep(window_start)
                self.last_sweep = now

            recent = [req_time for req_time in self.requests.get(client_ip, []) if req_time > window_start]
            if len(recent) >= self.max_requests:
                self.requests[client_ip] = recent
                return False

            recent.append(now)
            self.requests[client_ip] = recent
            return True

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        if not self.allow(client_ip, time.time()):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."},
            )

        return await call_next(request)


class CORSMiddleware(BaseHTTPMiddleware):
    """
    CORS headers for the browser UI.
    """

    async def dispatch(self, request: Request, call_next):
        # Preflight never reaches the routers
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-Country"

        return response


def build_middleware(settings: Settings = None) -> List[Middleware]:
    """Middleware stack for the application."""
    settings = settings or get_settings()
    return [
        Middleware(CORSMiddleware),
        Middleware(SecurityMiddleware),
        Middleware(RateLimitMiddleware, max_requests=settings.rate_limit, window_seconds=60),
    ]
