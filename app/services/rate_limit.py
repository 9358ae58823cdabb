from __future__ import annotations
import time
from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import HTTPException, Request, Response

from app.core.config import settings

@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_seconds: int

class TokenRateLimiter:
    def __init__(self, redis_url: str):
        self.r = redis.from_url(redis_url, decode_responses=True)

    async def allow(self, *, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = int(time.time())
        window = now // window_seconds
        rkey = f"rl:{key}:{window}"

        # INCR with expiry
        val = await self.r.incr(rkey)
        if val == 1:
            await self.r.expire(rkey, window_seconds)

        remaining = max(0, limit - val)
        reset = window_seconds - (now % window_seconds)
        return RateLimitResult(allowed=val <= limit, remaining=remaining, reset_seconds=reset)


# Create once (reuse Redis pool)
_limiter = TokenRateLimiter(settings.redis_url)


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def limit_payment_requests(request: Request, response: Response) -> None:
    """Fixed window per client address over all payment routes (100 per 15 minutes by default)."""
    if not settings.rate_limit_enabled:
        return

    limit = settings.rate_limit_requests
    rl = await _limiter.allow(
        key=f"payments:{_client_key(request)}",
        limit=limit,
        window_seconds=settings.rate_limit_window_seconds,
    )
    if not rl.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many payment requests, please try again later.",
            headers={"Retry-After": str(rl.reset_seconds)},
        )

    response.headers["X-RateLimit-Limit"] = str(limit)
    response.headers["X-RateLimit-Remaining"] = str(rl.remaining)
    response.headers["X-RateLimit-Reset"] = str(rl.reset_seconds)
