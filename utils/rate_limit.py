import logging
from time import time
from typing import Dict, Optional

import redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from config import settings
from backend.utils.responses import error_response

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

# Alipay retries notifications until it gets an answer; health checks poll constantly
EXEMPT_PATHS = (
    "/api/health",
    "/api/payments/alipay-notify",
    "/api/payments/alipay/notify",
)

_redis_client: Optional[redis.Redis] = None

if settings.redis_url:
    try:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        _redis_client.ping()
        logger.info("Redis connected for rate limiting")
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory rate limiting.")
        _redis_client = None
else:
    logger.info("REDIS_URL not set. Using in-memory rate limiting.")


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Per-IP fixed-window limiter.

    Each client IP may make `requests_per_minute` requests per minute window
    (RATE_LIMIT_PER_MINUTE by default). Counters live in Redis when it is
    reachable so several workers share them, otherwise in process memory.
    Over the limit the request is answered with the 429 error envelope.
    """

    def __init__(self, app, requests_per_minute: Optional[int] = None):
        super().__init__(app)
        self.limit = requests_per_minute or settings.rate_limit_per_minute
        # Counts for the current window only; older windows are dropped wholesale
        self._window = 0
        self._counts: Dict[str, int] = {}

    @staticmethod
    def client_ip(request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _hit_redis(self, ip: str, window: int) -> Optional[int]:
        """Increment the shared counter; None when Redis is unusable"""
        if _redis_client is None:
            return None
        key = f"rate_limit:{ip}:{window}"
        try:
            pipe = _redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, WINDOW_SECONDS + 5)
            count, _ = pipe.execute()
            return int(count)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed: {e}. Using in-memory counter.")
            return None

    def _hit_memory(self, ip: str, window: int) -> int:
        if window != self._window:
            self._window = window
            self._counts = {}
        self._counts[ip] = self._counts.get(ip, 0) + 1
        return self._counts[ip]

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in EXEMPT_PATHS or path.startswith("/uploads/"):
            return await call_next(request)

        ip = self.client_ip(request)
        window = int(time() // WINDOW_SECONDS)

        count = self._hit_redis(ip, window)
        if count is None:
            count = self._hit_memory(ip, window)

        if count > self.limit:
            logger.warning(f"Rate limit exceeded for {ip} on {path}")
            return error_response("RATE_LIMITED", status=429, message="请求过于频繁，请稍后再试")

        return await call_next(request)
