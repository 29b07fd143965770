"""
Mapping of lifecycle exceptions onto HTTP responses.

Every error leaves the API as ``{"error": {"kind", "message", "reason"?}}``.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lifecycle_kernel.exceptions import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    GuardFailedError,
    InvalidTransitionError,
    LifecycleError,
    UnknownActionError,
    UnknownEntityKindError,
)
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("api.errors")

# (exception type, HTTP status, error kind); first match wins
ERROR_MAP: tuple[tuple[type[LifecycleError], int, str], ...] = (
    (EntityNotFoundError, 404, "not_found"),
    (UnknownEntityKindError, 404, "unknown_collection"),
    (UnknownActionError, 400, "unknown_action"),
    (GuardFailedError, 400, "guard_failed"),
    (InvalidTransitionError, 400, "invalid_transition"),
    (ConcurrencyConflictError, 409, "conflict"),
)


class UnknownCollectionError(LookupError):
    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


def error_response(
    status_code: int, kind: str, message: str, reason: str | None = None
) -> JSONResponse:
    error: dict[str, str] = {"kind": kind, "message": message}
    if reason is not None:
        error["reason"] = reason
    return JSONResponse(status_code=status_code, content={"error": error})


def _reason(exc: LifecycleError) -> str | None:
    reason = getattr(exc, "reason", None)
    return getattr(reason, "value", None)


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    for exc_type, status_code, kind in ERROR_MAP:
        if isinstance(exc, exc_type):
            return error_response(status_code, kind, str(exc), _reason(exc))
    logger.error(
        "unmapped_lifecycle_error",
        extra={"error_code": exc.code, "error": str(exc), "path": request.url.path},
    )
    return error_response(500, "internal_error", "Internal error")


async def unknown_collection_handler(
    request: Request, exc: UnknownCollectionError
) -> JSONResponse:
    return error_response(404, "unknown_collection", str(exc))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    return error_response(422, "validation_error", f"Invalid request: {', '.join(fields)}")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(UnknownCollectionError, unknown_collection_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
