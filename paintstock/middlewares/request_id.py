from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("paintstock.request")

# Paths polled by monitoring; logging every hit only adds noise.
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it finishes."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        principal_token = principal_ctx_var.set(None)
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                extra={"extra_data": {"method": request.method, "path": request.url.path}},
            )
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            principal = principal_ctx_var.get()
            request_id_ctx_var.reset(token)
            principal_ctx_var.reset(principal_token)
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
        if request.url.path not in QUIET_PATHS:
            extra = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "request_id": request_id,
            }
            if principal:
                extra["principal"] = principal
            logger.info("request.completed", extra={"extra_data": extra})
        return response
