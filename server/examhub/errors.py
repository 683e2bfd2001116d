"""
Application errors.

Every failure that reaches a handler is an AppError tagged with an ErrorKind.
The HTTP status and the public error category come from the tables below, not
from the exception class.
"""
import enum
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    STORAGE = "storage"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.STORAGE: 500,
    ErrorKind.INTERNAL: 500,
}

CATEGORY_BY_STATUS: Dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    500: "Internal Server Error",
}

# Kinds whose message is safe to show to clients
PUBLIC_KINDS = {ErrorKind.NOT_FOUND, ErrorKind.VALIDATION}

GENERIC_MESSAGE = "Internal server error"


class AppError(Exception):
    """An error tagged with its kind and the operation that raised it."""

    def __init__(self, kind: ErrorKind, message: str, context: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = context

    @classmethod
    def not_found(cls, message: str, context: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.NOT_FOUND, message, context)

    @classmethod
    def validation(cls, message: str, context: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.VALIDATION, message, context)

    @classmethod
    def upstream(cls, message: str, context: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.UPSTREAM, message, context)

    @classmethod
    def storage(cls, message: str, context: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.STORAGE, message, context)

    @classmethod
    def internal(cls, message: str, context: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.INTERNAL, message, context)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def public_message(self) -> str:
        if self.kind in PUBLIC_KINDS:
            return self.message
        return GENERIC_MESSAGE

    def __str__(self) -> str:
        if self.context:
            return f"{self.message}: {self.context}"
        return self.message


def error_body(status_code: int, message: str) -> Dict[str, Any]:
    return {"error": CATEGORY_BY_STATUS.get(status_code, CATEGORY_BY_STATUS[500]), "message": message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind.value, exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.public_message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid value')}"
        for err in exc.errors()
    )
    logger.info("%s %s rejected: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content=error_body(400, details or "Invalid request"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
