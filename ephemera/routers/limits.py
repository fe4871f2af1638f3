"""Rate-limit check endpoint: counts a hit against a named limiter and reports the decision."""
import math

from fastapi import APIRouter, Request, Response, status

from ephemera.dependencies import client_ip, get_limiter, rate_limit_headers
from ephemera.models import RateLimitStatus

router = APIRouter(prefix="/api/rate-limit")


@router.get("/{scope}", response_model=RateLimitStatus)
async def check_rate_limit(scope: str, request: Request, response: Response) -> RateLimitStatus:
    limiter = get_limiter(request, scope)
    decision = await limiter.check(client_ip(request))
    response.headers.update(rate_limit_headers(decision))
    if not decision.allowed:
        response.status_code = status.HTTP_429_TOO_MANY_REQUESTS
        response.headers["Retry-After"] = str(decision.retry_after(request.app.state.clock.now()))
    return RateLimitStatus(
        scope=scope,
        allowed=decision.allowed,
        limit=decision.limit,
        remaining=decision.remaining,
        reset_at=math.ceil(decision.reset_at),
    )
