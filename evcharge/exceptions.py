"""
Error taxonomy for the EV charging console.

Every business-rule failure is an `APIException` (a FastAPI `HTTPException`)
carrying a stable error code in the `X-Error` header. The handler registered
by `register_exception_handlers` renders them as `{"code", "message"}` so
clients can tell "wrong QR code" apart from "booking already decided".

None of these are retried: they are terminal for the request. Only transport
failures are retried, and only by the client.
"""

from logging import getLogger
from traceback import format_exception

from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = getLogger("evcharge.errors")


def logException(e: Exception) -> None:
    """Log an exception with its traceback."""
    detail = "".join(format_exception(type(e), e, e.__traceback__))
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Subclasses set `status_code`, a default `detail` and `code`.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    code = "error"

    def __init__(self, detail: str = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail if detail is not None else self.detail,
            headers={"X-Error": self.code},
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


# ---------------------------------------------------------------------------
# Exception Classes
# ---------------------------------------------------------------------------
class ValidationError(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "The request contains invalid values"
    code = "validation_error"


class InvalidStateTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "The booking cannot make this transition from its current status"
    code = "invalid_state_transition"


class InvalidToken(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "The QR code does not match this booking"
    code = "invalid_token"


class NotAuthorized(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You are not allowed to perform this action"
    code = "not_authorized"


class ConflictError(APIException):
    status_code = status.HTTP_409_CONFLICT
    detail = "The request conflicts with the current state of a related entity"
    code = "conflict"


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "The requested entity does not exist"
    code = "not_found"


class SessionExpired(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "The session has expired, please sign in again"
    code = "session_expired"

    def __init__(self, detail: str = None):
        super().__init__(detail)
        self.headers["WWW-Authenticate"] = "Bearer"


class AuthenticationFailed(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Incorrect username or password"
    code = "authentication_failed"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        ValidationError,
        InvalidStateTransition,
        InvalidToken,
        NotAuthorized,
        ConflictError,
        NotFound,
        SessionExpired,
        AuthenticationFailed,
    )
}


def from_integrity_error(e: IntegrityError) -> APIException:
    """Map a database constraint violation to a conflict."""
    logger.warning(f"Integrity error: {e.orig}")
    return ConflictError("The change violates a uniqueness or reference constraint")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in errors
        )
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"code": ValidationError.code, "message": message},
            headers={"X-Error": ValidationError.code},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logException(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"code": "internal_error", "message": "Internal server error"},
        )
