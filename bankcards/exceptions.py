"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate
them into HTTP responses with one consistent body:

    {"timestamp": ..., "status": 404, "error": "Card Not Found", "message": ...}

Exception hierarchy:
    BankCardsError (base)
    ├── CardNotFoundError          — 404
    ├── UserNotFoundError          — 404
    ├── TransactionNotFoundError   — 404
    ├── CardAlreadyExistsError     — 409, PAN digest already stored
    ├── DuplicateUserError         — 409, username or email taken
    ├── ValidationFailedError      — 400
    │   └── InvalidCardNumberError — 400, not 16 digits or fails Luhn
    ├── InsufficientFundsError     — 400
    ├── OperationNotAllowedError   — 403
    ├── AccessDeniedError          — 403
    ├── UnauthenticatedError       — 401
    ├── InvalidCredentialsError    — 401
    └── CryptoFailureError         — 500, message redacted

Request-shape failures (Pydantic) are answered with a flat
{"field": "message"} mapping and status 400. Anything else becomes a 500
with the message "An unexpected error occurred".
"""

from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankCardsError(Exception):
    """Base exception for all Bank Card API domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "Bad Request"
    expose_message: bool = True

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class CardNotFoundError(BankCardsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "Card Not Found"

    def __init__(self, card_id: int | None = None, detail: str | None = None):
        self.card_id = card_id
        super().__init__(detail or f"Card not found with id: {card_id}")


class UserNotFoundError(BankCardsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "User Not Found"

    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)


class TransactionNotFoundError(BankCardsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "Transaction Not Found"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found with id: {transaction_id}")


class CardAlreadyExistsError(BankCardsError):
    """Raised when a card with the same number (by digest) is already stored."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "Card Already Exists"

    def __init__(self):
        super().__init__("Card already exists")


class DuplicateUserError(BankCardsError):
    """Raised when a username or email is already taken by another user."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "User Already Exists"


class ValidationFailedError(BankCardsError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "Validation Failed"


class InvalidCardNumberError(ValidationFailedError):
    def __init__(self):
        super().__init__("Invalid card number")


class InsufficientFundsError(BankCardsError):
    """
    Raised when a transfer would take the source card below zero.

    Attributes:
        card_id: The card that lacks sufficient funds.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "Insufficient Funds"

    def __init__(self, card_id: int | None = None):
        self.card_id = card_id
        super().__init__("Insufficient funds")


class OperationNotAllowedError(BankCardsError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "Operation Not Allowed"


class AccessDeniedError(BankCardsError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "Access Denied"

    def __init__(self, detail: str = "Access denied"):
        super().__init__(detail)


class UnauthenticatedError(BankCardsError):
    """A call reached a service without an authenticated caller."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "Unauthorized"

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail)


class InvalidCredentialsError(BankCardsError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "Unauthorized"

    def __init__(self):
        super().__init__("Invalid username or password")


class CryptoFailureError(BankCardsError):
    """Bad key length, unsupported algorithm, bad padding or malformed Base64."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "Internal Server Error"
    expose_message = False


class TransferCardMissingError(LookupError):
    """
    A card named in a transfer request does not exist.

    Deliberately outside the BankCardsError taxonomy: it is answered by
    the generic 500 handler rather than as a 404.
    """


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def error_body(status_code: int, error: str, message: str) -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status_code,
        "error": error,
        "message": message,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(BankCardsError)
    async def bank_cards_error_handler(
        request: Request, exc: BankCardsError
    ) -> JSONResponse:
        if exc.expose_message:
            message = exc.detail
        else:
            logger.error("domain_error_redacted", path=request.url.path, error=exc.detail)
            message = INTERNAL_ERROR_MESSAGE
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.error_type, message),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Flat {field: message}; the last location element is the field name
        errors: dict[str, str] = {}
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            field = location[-1] if location else "body"
            errors.setdefault(field, error.get("msg", "Invalid value"))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=errors)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            path=request.url.path,
            error_class=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(500, "Internal Server Error", INTERNAL_ERROR_MESSAGE),
        )
