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
logger = logging.getLogger("helpdesk.request")

# Static assets and metrics scrapes are too chatty to log one line each.
QUIET_PREFIXES = ("/static/", "/metrics")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it completes.

    The id is taken from the incoming ``X-Request-ID`` header when a proxy
    already set one, echoed back on the response, and attached to every log
    record written while the request is handled.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    def _log_fields(self, request: Request, start: float) -> dict[str, object]:
        fields: dict[str, object] = {
            "method": request.method,
            "path": request.url.path,
            "duration_ms": _elapsed_ms(start),
        }
        # Auth dependencies run in a child context; the principal comes back via request.state.
        principal = getattr(request.state, "principal", None)
        if principal:
            fields["principal"] = principal
        return fields

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("request.failed", extra={"extra_data": self._log_fields(request, start)})
                raise
            fields = self._log_fields(request, start)
            fields["status"] = response.status_code
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{fields['duration_ms']:.2f}ms")
            if response.status_code >= 500:
                logger.warning("request.completed", extra={"extra_data": fields})
            elif not request.url.path.startswith(QUIET_PREFIXES):
                logger.info("request.completed", extra={"extra_data": fields})
            return response
        finally:
            request_id_ctx_var.reset(token)
