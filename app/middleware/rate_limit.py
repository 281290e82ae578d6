"""Rate limiting using slowapi"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from app.core.config import settings

# Custom key function that considers the authenticated shop
def get_rate_limit_key(request: Request) -> str:
    """Get rate limit key based on shop or IP"""
    # Set by get_current_shop once the session token is validated
    shop = getattr(request.state, "shop", None)

    if shop:
        return f"shop:{shop}"

    # Fall back to IP address
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    elif request.client:
        ip = request.client.host
    else:
        ip = "unknown"

    return f"ip:{ip}"

# Create limiter instance
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Custom rate limit exceeded handler
async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMIT_EXCEEDED",
            "detail": f"Too many requests. {exc.detail}"
        }
    )

# Shared limit for the AI chat relay, every chat route draws from one bucket
ai_chat_limiter = limiter.shared_limit(settings.RATE_LIMIT_AI_CHAT, scope="ai-chat")
