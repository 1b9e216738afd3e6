from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class NotFoundError(ValueError):
    """A referenced row does not exist."""

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key} not found")
        self.entity = entity
        self.key = key


class InsufficientStockError(ValueError):
    """A checkout asked for more units than are on hand."""

    def __init__(self, item_id: int, requested: int, available: int, name: str | None = None) -> None:
        label = name or f"item {item_id}"
        super().__init__(f"Only {available} of {label} in stock, {requested} requested")
        self.item_id = item_id
        self.requested = requested
        self.available = available


class InactiveProjectError(ValueError):
    """Material can only be checked out against an active project."""

    def __init__(self, project_id: int, status_value: str | None) -> None:
        super().__init__(f"Project {project_id} is {status_value or 'not active'}")
        self.project_id = project_id
        self.status = status_value


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _status_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Error"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        accept = (request.headers.get("accept") or "").lower()
        path = request.url.path
        if "text/html" in accept and not path.startswith("/api") and not path.startswith("/login"):
            return RedirectResponse(url=f"/login?next={request.url.path}", status_code=302)
    detail = exc.detail
    message = detail if isinstance(detail, str) else _status_phrase(exc.status_code)
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": exc.errors()},
    )


async def insufficient_stock_handler(request: Request, exc: InsufficientStockError):
    return ErrorEnvelope(
        status_code=status.HTTP_409_CONFLICT,
        code="insufficient_stock",
        message=str(exc),
        details={"item_id": exc.item_id, "requested": exc.requested, "available": exc.available},
    )


async def not_found_handler(request: Request, exc: NotFoundError):
    return ErrorEnvelope(status_code=status.HTTP_404_NOT_FOUND, code="not_found", message=str(exc))


async def domain_error_handler(request: Request, exc: ValueError):
    logger.info("request.rejected", extra={"extra_data": {"path": request.url.path, "reason": str(exc)}})
    return ErrorEnvelope(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, code="invalid_request", message=str(exc))


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InsufficientStockError, insufficient_stock_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InactiveProjectError, domain_error_handler)


# Errors with a dedicated handler; routers let these through untouched.
HANDLED_ERRORS = (NotFoundError, InsufficientStockError, InactiveProjectError)
