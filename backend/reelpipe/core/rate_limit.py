"""
Rate Limiting Middleware

Rate limits are keyed by ACTION CATEGORY (route name), not URL path, so
/projects/abc/render and /projects/xyz/render share one "render" budget.
The pipeline stages call paid external models; the "analyze" budget keeps a
single client from draining them.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Match

from .redis import get_redis_connection


# Rate limits by category: (requests, window_seconds)
RATE_LIMITS: dict[str, tuple[int, int]] = {
    "analyze": (30, 60),      # frame batches arrive in bursts
    "render": (10, 300),
    "callback": (300, 60),    # render service retries aggressively
    "default": (500, 60),     # allows for status polling
}

# Map route names to rate limit categories
# Route names are defined in endpoint decorators: @router.post("/path", name="route_name")
ROUTE_CATEGORIES: dict[str, str] = {
    "analyze_frames": "analyze",
    "transcribe": "analyze",
    "select_segments": "analyze",
    "start_render": "render",
    "render_callback": "callback",
}


def get_rate_limit_category(request: Request) -> str:
    """
    Determine the rate limit category from the matched route name.

    Returns:
        str: Category name, "default" when the route is not mapped
    """
    for route in request.app.routes:
        match, _ = route.matches(request.scope)

        if match == Match.FULL:
            route_name = getattr(route, "name", None)

            if route_name and route_name in ROUTE_CATEGORIES:
                return ROUTE_CATEGORIES[route_name]

    return "default"


def get_rate_limit_key(client_id: str, category: str) -> str:
    """Redis key for rate limiting: ratelimit:{client_id}:{category}."""
    return f"ratelimit:{client_id}:{category}"


async def check_rate_limit(client_id: str, category: str) -> tuple[bool, int, int]:
    """
    Check and count a request against its category budget.

    Returns:
        tuple: (is_allowed, current_count, retry_after_seconds)
    """
    limit, window = RATE_LIMITS.get(category, RATE_LIMITS["default"])
    key = get_rate_limit_key(client_id, category)

    redis = get_redis_connection()

    current = redis.get(key)
    current_count = int(current) if current else 0

    if current_count >= limit:
        ttl = redis.ttl(key)
        return False, current_count, max(ttl, 0)

    # Increment counter using pipeline for atomicity
    pipe = redis.pipeline()
    pipe.incr(key)
    pipe.expire(key, window)
    pipe.execute()

    return True, current_count + 1, 0


async def rate_limit_middleware(request: Request, call_next: Callable) -> Response:
    """
    Rate limiting middleware function.

    Clients are identified by the user id placed on request.state by
    upstream auth, or by client IP otherwise.
    """
    client_id = getattr(request.state, "user_id", None)

    if client_id is None:
        client_host = request.client.host if request.client else "unknown"
        client_id = f"anon:{client_host}"

    category = get_rate_limit_category(request)
    limit, window = RATE_LIMITS.get(category, RATE_LIMITS["default"])

    is_allowed, current_count, retry_after = await check_rate_limit(client_id, category)

    if not is_allowed:
        # HTTPException raised in BaseHTTPMiddleware is not handled by FastAPI
        return JSONResponse(
            status_code=429,
            content={
                "detail": {
                    "error": "rate_limit_exceeded",
                    "message": f"Rate limit exceeded for {category}",
                    "category": category,
                    "limit": limit,
                    "window_seconds": window,
                    "retry_after_seconds": retry_after,
                }
            },
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    response = await call_next(request)

    response.headers["X-RateLimit-Limit"] = str(limit)
    response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
    response.headers["X-RateLimit-Category"] = category

    return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware class.

    Usage:
        app.add_middleware(RateLimitMiddleware)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        return await rate_limit_middleware(request, call_next)
