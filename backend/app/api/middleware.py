import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.services import auth_service

WINDOW_SECONDS = 60
SWEEP_THRESHOLD = 1024


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int | None = None, sweep_threshold: int = SWEEP_THRESHOLD):
        super().__init__(app)
        self.limit = limit if limit is not None else settings.rate_limit_per_minute
        self.sweep_threshold = sweep_threshold
        self._requests: dict[str, list[float]] = {}

    def _extract_identity(self, request: Request) -> str | None:
        """Extract rate-limit key from the bearer token or the token cookie."""
        auth_header = request.headers.get("authorization", "")
        token = None
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
        if not token:
            token = request.cookies.get(settings.token_cookie_name)
        if token:
            return f"token:{auth_service.token_key(token)}"

        # Anonymous callers (e.g. login) are limited per client address
        if request.client:
            return f"ip:{request.client.host}"
        return None

    def _sweep(self, window_start: float) -> None:
        """Forget identities with no request inside the current window."""
        stale = [k for k, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for key in stale:
            del self._requests[key]

    def hit(self, identity: str, now: float) -> bool:
        """Record a request for ``identity``. Returns False if it is over the limit."""
        window_start = now - WINDOW_SECONDS
        if len(self._requests) >= self.sweep_threshold:
            self._sweep(window_start)

        # Clean old entries and check limit
        timestamps = [t for t in self._requests.get(identity, ()) if t > window_start]
        if len(timestamps) >= self.limit:
            self._requests[identity] = timestamps
            return False

        timestamps.append(now)
        self._requests[identity] = timestamps
        return True

    async def dispatch(self, request: Request, call_next):
        identity = self._extract_identity(request)
        if not identity:
            return await call_next(request)

        if not self.hit(identity, time.time()):
            return JSONResponse(
                status_code=429,
                content={
                    "detail": f"Rate limit exceeded. Maximum {self.limit} requests per minute."
                },
            )
        return await call_next(request)
