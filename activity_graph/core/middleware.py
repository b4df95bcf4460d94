from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from threading import RLock
from time import monotonic

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from activity_graph.services.svg_renderer import render_error_svg
from activity_graph.themes import get_theme


RATE_LIMITED_PATHS = frozenset({"/activity", "/api/activity"})


class SlidingWindowLimiter:
    """Count hits per key within a trailing window of `window_seconds`.

    A key's bucket is dropped as soon as all of its hits have expired, so idle
    clients do not accumulate state.
    """

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max(1, max_requests)
        self.window_seconds = max(1, window_seconds)
        self._buckets: dict[str, deque[float]] = {}
        self._lock = RLock()

    def hit(self, key: str, now: float) -> int | None:
        """Record a hit for key and return None, or the Retry-After seconds."""

        with self._lock:
            self._evict(now)
            bucket = self._buckets.setdefault(key, deque())
            if len(bucket) >= self.max_requests:
                return max(1, int(self.window_seconds - (now - bucket[0])))
            bucket.append(now)
            return None

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        for key in list(self._buckets):
            bucket = self._buckets[key]
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if not bucket:
                del self._buckets[key]


class ActivityRateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit the SVG activity endpoints per client IP.

    Limited requests still get an SVG body, so embedded images show the error.
    """

    def __init__(
        self,
        app,
        requests_per_window: int = 30,
        window_seconds: int = 60,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(requests_per_window, window_seconds)
        self._clock = clock

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method != "GET" or request.url.path not in RATE_LIMITED_PATHS:
            return await call_next(request)

        retry_after = self.limiter.hit(client_ip(request), self._clock())
        if retry_after is None:
            return await call_next(request)

        theme = get_theme(request.query_params.get("theme"))
        return Response(
            content=render_error_svg("Too many requests, try again later", theme),
            status_code=429,
            media_type="image/svg+xml",
            headers={"Retry-After": str(retry_after)},
        )


def client_ip(request: Request) -> str:
    # First hop of X-Forwarded-For when behind a proxy.
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"

    if request.client and request.client.host:
        return request.client.host

    return "unknown"
