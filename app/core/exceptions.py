"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

class InsightsException(HTTPException):
    """Base exception class for the application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

class BadRequestException(InsightsException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )

class UnauthorizedException(InsightsException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(InsightsException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(InsightsException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(InsightsException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(InsightsException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

class RateLimitException(InsightsException):
    """429 Too Many Requests"""

    def __init__(
        self,
        detail: str = "Rate limit exceeded",
        error_code: str = "RATE_LIMIT_EXCEEDED",
        retry_after: Optional[int] = None
    ):
        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code=error_code,
            headers=headers
        )

class BadGatewayException(InsightsException):
    """502 Bad Gateway"""

    def __init__(self, detail: str, error_code: str = "BAD_GATEWAY"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code
        )

class ServiceUnavailableException(InsightsException):
    """503 Service Unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code
        )

# Business logic exceptions
PROTECTED_DATA_CODES = {
    "orders": "PROTECTED_ORDER_DATA_ACCESS_DENIED",
    "customers": "PROTECTED_CUSTOMER_DATA_ACCESS_DENIED",
}

class ProtectedDataAccessError(ForbiddenException):
    """The app is not approved for a protected Shopify data scope"""

    def __init__(self, scope: str = "orders", detail: Optional[str] = None):
        self.scope = scope
        super().__init__(
            detail=detail or f"This app is not approved to access protected {scope} data",
            error_code=PROTECTED_DATA_CODES.get(scope, PROTECTED_DATA_CODES["orders"])
        )

class RemoteQueryError(BadGatewayException):
    """Admin GraphQL API answered with an error payload"""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="REMOTE_QUERY_ERROR")

class AIServiceError(BadGatewayException):
    """AI chat webhook failed or returned an unusable response"""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="AI_SERVICE_ERROR")

class AIServiceNotConfiguredException(ServiceUnavailableException):
    """No AI webhook URL configured"""

    def __init__(self):
        super().__init__(
            detail="AI chat webhook URL is not configured",
            error_code="AI_SERVICE_NOT_CONFIGURED"
        )

class InvalidTransitionException(ConflictException):
    """Saved list cannot move to the requested status"""

    def __init__(self, current: str, action: str):
        super().__init__(
            detail=f"Cannot {action} a list that is {current}",
            error_code="INVALID_STATUS_TRANSITION"
        )

async def insights_exception_handler(request: Request, exc: InsightsException) -> JSONResponse:
    """Render application errors as {"error": code, "detail": message}"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "detail": exc.detail},
        headers=exc.headers,
    )
