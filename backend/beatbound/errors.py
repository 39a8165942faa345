from __future__ import annotations
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
import structlog

log = structlog.get_logger()


class ApiError(Exception):
    """
    Base for errors surfaced to API callers as {"error": kind, "message": text}.
    Subclasses pin the kind and HTTP status.
    """
    status_code: int = 500
    kind: str = "InternalServerError"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def headers(self) -> dict[str, str] | None:
        return None


class BadRequest(ApiError):
    status_code = 400
    kind = "BadRequest"
    default_message = "Bad request"


class InvalidState(ApiError):
    status_code = 400
    kind = "InvalidState"
    default_message = "Operation not allowed in the current state"


class Unauthenticated(ApiError):
    status_code = 401
    kind = "Unauthenticated"
    default_message = "Authentication required"

    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(ApiError):
    status_code = 403
    kind = "Forbidden"
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    kind = "NotFound"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class Duplicate(ApiError):
    status_code = 409
    kind = "Duplicate"
    default_message = "A record with this value already exists"


class RateLimited(ApiError):
    status_code = 429
    kind = "TooManyRequests"
    default_message = "Too many requests, please try again later"

    def __init__(self, message: str | None = None, retry_after: int = 1):
        super().__init__(message)
        self.retry_after = max(1, int(retry_after))

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after)}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    log.info("api_error", path=request.url.path, method=request.method, kind=exc.kind, status=exc.status_code, detail=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message},
        headers=exc.headers(),
    )


UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for unique-constraint failures only, not FK, CHECK or NOT NULL ones."""
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    # sqlite reports no SQLSTATE
    return "UNIQUE constraint failed" in str(exc.orig)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # Constraint violations that escaped a service-level translation
    if is_unique_violation(exc):
        log.warning("integrity_error", path=request.url.path, method=request.method, error=str(exc.orig))
        return await api_error_handler(request, Duplicate())
    log.error("integrity_error", path=request.url.path, method=request.method, error=str(exc.orig))
    return await api_error_handler(request, ApiError())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
