"""Security headers for an app embedded in the Shopify admin"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)

FRAME_ANCESTORS = "https://admin.shopify.com https://*.myshopify.com"

class SecurityMiddleware(BaseHTTPMiddleware):
    """Adds security headers that still allow admin iframe embedding"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        path = request.url.path
        is_docs_endpoint = path.startswith('/api/docs') or path.startswith('/api/redoc') or path.startswith('/openapi.json')

        if is_docs_endpoint:
            # More permissive CSP for documentation
            response.headers["Content-Security-Policy"] = (
                "default-src 'self' 'unsafe-inline' 'unsafe-eval' https: data: blob:; "
                "img-src 'self' data: https: blob:; "
                "worker-src 'self' blob: data:"
            )
        else:
            # Printable exports are opened in a new tab from the embedded UI
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "style-src 'self' 'unsafe-inline'; "
                "img-src 'self' data: https:; "
                f"frame-ancestors {FRAME_ANCESTORS}"
            )

        return response
