"""
Security utilities for authentication
Validates Shopify App Bridge session tokens sent by the embedded admin UI
"""

from typing import Dict, Any
from urllib.parse import urlparse
from jose import JWTError, jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging

from .config import settings
from .exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

SESSION_TOKEN_ALGORITHM = "HS256"

class SessionTokenUtils:
    """Session token helpers"""

    @staticmethod
    def decode_session_token(token: str) -> Dict[str, Any]:
        """Decode and validate a session token signed with the app secret"""
        try:
            return jwt.decode(
                token,
                settings.SHOPIFY_API_SECRET,
                algorithms=[SESSION_TOKEN_ALGORITHM],
                audience=settings.SHOPIFY_API_KEY,
                options={"leeway": settings.SESSION_TOKEN_LEEWAY},
            )
        except JWTError as e:
            logger.info(f"Rejected session token: {e}")
            raise UnauthorizedException("Invalid session token")

    @staticmethod
    def shop_from_claims(payload: Dict[str, Any]) -> str:
        """
        Extract the shop domain from the dest claim

        The dest claim is the shop URL (https://example.myshopify.com),
        iss is the same shop's admin URL and must agree with it.
        """
        dest_host = urlparse(payload.get("dest") or "").netloc
        iss_host = urlparse(payload.get("iss") or "").netloc

        if not dest_host.endswith(".myshopify.com"):
            raise UnauthorizedException("Session token has no shop destination")
        if iss_host and iss_host != dest_host:
            raise UnauthorizedException("Session token issuer does not match shop")
        return dest_host

# Dependency to get current shop from the session token
async def get_current_shop(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """Extract and validate the shop from the App Bridge session token"""
    if credentials is None:
        raise UnauthorizedException("Missing session token")

    payload = SessionTokenUtils.decode_session_token(credentials.credentials)
    shop = SessionTokenUtils.shop_from_claims(payload)
    request.state.shop = shop

    return {
        "shop": shop,
        "user_id": payload.get("sub"),
        "session_id": payload.get("sid"),
    }
