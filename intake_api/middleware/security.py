"""Per-IP rate limiting and security headers.

Submissions get a strict budget; every other ``/api/`` call shares a more
generous one. Both come from settings.
"""

import ipaddress
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from intake_api.config.settings import settings

logger = structlog.get_logger()

SUBMIT_PATH = "/api/applications/submit"
RATE_LIMIT_MESSAGE = "Too many requests, please try again later."

# Peers allowed to set X-Forwarded-For (load balancers, local proxies)
TRUSTED_PROXIES = tuple(
    ipaddress.ip_network(net)
    for net in ("127.0.0.1/32", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
HSTS_VALUE = "max-age=63072000; includeSubDomains"


@dataclass(frozen=True)
class RateBucket:
    """A named request budget: at most ``limit`` hits per ``window`` seconds."""

    name: str
    limit: int
    window: int


class InMemoryRateLimiter:
    """Sliding-window counter keyed by an arbitrary string.

    State is per process, so each worker enforces its own budget.
    """

    # Sweep idle keys every N checks
    SWEEP_EVERY = 100

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._checks = 0

    def _sweep(self, now: float, horizon: int) -> None:
        self._checks += 1
        if self._checks < self.SWEEP_EVERY:
            return
        self._checks = 0
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] < now - horizon]
        for key in idle:
            del self._hits[key]

    def is_rate_limited(self, key: str, limit: int, window: int = 60) -> bool:
        """Record a hit for ``key`` unless it already used up its budget.

        Returns:
            True if the hit was refused
        """
        now = time.time()
        self._sweep(now, max(window, settings.SUBMISSION_RATE_WINDOW))

        hits = self._hits[key]
        while hits and hits[0] <= now - window:
            hits.popleft()

        if len(hits) >= limit:
            return True
        hits.append(now)
        return False

    def reset(self) -> None:
        """Forget all recorded hits."""
        self._hits.clear()
        self._checks = 0


rate_limiter = InMemoryRateLimiter()


def _is_trusted(ip: str) -> bool:
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return any(address in network for network in TRUSTED_PROXIES)


def get_client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For only from trusted proxies.

    Proxies append to the header, so the nearest untrusted hop (scanning from
    the right) is the real client.
    """
    peer = request.client.host if request.client else "unknown"
    if not _is_trusted(peer):
        return peer

    chain = [hop.strip() for hop in request.headers.get("X-Forwarded-For", "").split(",") if hop.strip()]
    for hop in reversed(chain):
        if not _is_trusted(hop):
            return hop
    return chain[0] if chain else peer


def bucket_for(request: Request) -> Optional[RateBucket]:
    """Pick the budget a request counts against; None for unlimited paths."""
    path = request.url.path
    if not path.startswith("/api/"):
        return None
    if request.method == "POST" and path.rstrip("/") == SUBMIT_PATH:
        return RateBucket("submit", settings.SUBMISSION_RATE_LIMIT, settings.SUBMISSION_RATE_WINDOW)
    return RateBucket("api", settings.API_RATE_LIMIT, settings.API_RATE_WINDOW)


class SecurityMiddleware(BaseHTTPMiddleware):
    """Enforces rate limits on API routes and stamps security headers on every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if self._over_limit(request):
            response = JSONResponse(
                status_code=429,
                content={"success": False, "message": RATE_LIMIT_MESSAGE},
            )
        else:
            response = await call_next(request)

        response.headers.update(SECURITY_HEADERS)
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response

    def _over_limit(self, request: Request) -> bool:
        if not settings.RATE_LIMIT_ENABLED:
            return False
        bucket = bucket_for(request)
        if bucket is None:
            return False

        client_ip = get_client_ip(request)
        if rate_limiter.is_rate_limited(f"{bucket.name}:{client_ip}", bucket.limit, bucket.window):
            logger.warning("Rate limit exceeded", bucket=bucket.name, client_ip=client_ip)
            return True
        return False
