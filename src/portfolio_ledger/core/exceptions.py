"""Centralized exception hierarchy and handlers for the application.

Every service raises exceptions from this hierarchy; a single FastAPI handler
maps them to JSON responses with the matching HTTP status code.

Exception Hierarchy:
    AppException (base)
    ├── ValidationError (400)
    ├── AuthenticationError (401)
    ├── NotFoundError (404)
    ├── ConflictError (409)
    │   └── InsufficientHoldingsError (409)
    ├── PersistenceError (500)
    └── UpstreamUnavailableError (503)

Usage in Services:
    from portfolio_ledger.core.exceptions import InsufficientHoldingsError

    if available < quantity:
        raise InsufficientHoldingsError(symbol=symbol, requested=quantity, available=available)

Ledger writes are all-or-nothing: anything raised inside ``transactional()``
rolls the unit of work back before it reaches the handler.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for all application errors.

    Attributes:
        status_code: HTTP status code for this error type
        detail: User-facing error message
        error_code: Machine-readable error code (optional)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    error_code: str | None = None

    def __init__(
        self,
        detail: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            detail: Custom error message (overrides class default)
            error_code: Machine-readable error identifier
        """
        self.detail = detail or self.__class__.detail
        self.error_code = error_code or self.__class__.error_code
        super().__init__(self.detail)


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Malformed or out-of-range input; nothing has been written.
    Maps to HTTP 400 Bad Request.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"
    error_code = "VALIDATION_ERROR"


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    Used for invalid credentials, expired tokens, or missing authentication.
    Maps to HTTP 401 Unauthorized.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication failed"
    error_code = "AUTHENTICATION_ERROR"


class NotFoundError(AppException):
    """
    Raised when a requested resource is not found.

    Maps to HTTP 404 Not Found.
    """

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    error_code = "NOT_FOUND"


class ConflictError(AppException):
    """
    Raised when the request conflicts with the current state.

    Maps to HTTP 409 Conflict.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource conflict"
    error_code = "CONFLICT"


class InsufficientHoldingsError(ConflictError):
    """
    Raised when a sell asks for more shares than the owner holds.

    Business-rule rejection; no lot, transaction or sale has been touched.
    """

    detail = "Insufficient holdings"
    error_code = "INSUFFICIENT_HOLDINGS"

    def __init__(self, *, symbol: str, requested: int, available: int) -> None:
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, available {available}"
        )


class PersistenceError(AppException):
    """
    Raised when the database cannot commit a unit of work.

    The operation has been rolled back in full. Callers may retry.
    Maps to HTTP 500 Internal Server Error.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Database operation failed"
    error_code = "PERSISTENCE_ERROR"


class UpstreamUnavailableError(AppException):
    """
    Raised when the quote provider fails or times out.

    Valuation isolates this per symbol; it only surfaces as a response when a
    caller asks for a single quote directly.
    Maps to HTTP 503 Service Unavailable.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Quote provider unavailable"
    error_code = "UPSTREAM_UNAVAILABLE"


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """
    Handle application exceptions and convert to HTTP responses.

    Response Format:
        {
            "detail": "User-facing error message",
            "error_code": "MACHINE_READABLE_CODE"
        }

    Server errors (5xx) are logged with the stack trace, client errors (4xx)
    with the message only.
    """
    extra = {
        "status_code": exc.status_code,
        "error_code": exc.error_code,
        "request_path": request.url.path,
    }
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc.detail}", exc_info=True, extra=extra)
    else:
        logger.warning(f"{exc.__class__.__name__}: {exc.detail}", extra=extra)

    response_body: dict[str, Any] = {"detail": exc.detail}
    if exc.error_code:
        response_body["error_code"] = exc.error_code

    return JSONResponse(
        status_code=exc.status_code,
        content=response_body,
    )
