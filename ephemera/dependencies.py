"""FastAPI dependencies: reach the stores owned by the app, and enforce rate limits."""
import logging
import math
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status

from ephemera.blob_host import BlobHost
from ephemera.rate_limiter import RateLimitDecision, WindowLimiter

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Best-effort client address used as the rate-limit identifier.

    X-Forwarded-For is only honoured when ``trust_forwarded_for`` is set; the app
    must then sit behind a reverse proxy that overwrites the header, otherwise
    clients can pick their own identifier.
    """
    if request.app.state.settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded and forwarded.split(",")[0].strip():
            return forwarded.split(",")[0].strip()
        real = request.headers.get("X-Real-IP")
        if real and real.strip():
            return real.strip()
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


def get_blob_host(request: Request) -> BlobHost:
    return request.app.state.blob_host


def get_limiter(request: Request, scope: str) -> WindowLimiter:
    limiters: dict[str, WindowLimiter] = request.app.state.limiters
    limiter = limiters.get(scope)
    if limiter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown rate limit scope '{scope}'")
    return limiter


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(math.ceil(decision.reset_at)),
    }


def require_rate_limit(scope: str) -> Callable[[Request, Response], Awaitable[RateLimitDecision]]:
    """Build a dependency that counts one hit against ``scope`` for the caller's IP.

    Raises 429 with Retry-After once the window's ceiling is exceeded.
    """

    async def _dependency(request: Request, response: Response) -> RateLimitDecision:
        limiter = get_limiter(request, scope)
        identifier = client_ip(request)
        decision = await limiter.check(identifier)
        headers = rate_limit_headers(decision)
        if not decision.allowed:
            retry_after = decision.retry_after(request.app.state.clock.now())
            logger.info("Rate limit exceeded for %s on %s", identifier, scope)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": "Rate limit exceeded. Please slow down.", "retryAfter": retry_after},
                headers={**headers, "Retry-After": str(retry_after)},
            )
        response.headers.update(headers)
        return decision

    return _dependency
