"""ASGI middlewares installed by ``helpdesk.app``.

``RequestIdMiddleware`` must wrap everything else so its log line and
``X-Request-ID`` header cover the whole stack; ``helpdesk/__init__.py``
therefore adds it last.
"""

from __future__ import annotations

from .request_id import QUIET_PREFIXES, RequestIdMiddleware, principal_ctx_var, request_id_ctx_var
from .security_headers import CONTENT_SECURITY_POLICY, SecurityHeadersMiddleware

__all__ = [
    "CONTENT_SECURITY_POLICY",
    "QUIET_PREFIXES",
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "principal_ctx_var",
    "request_id_ctx_var",
]
