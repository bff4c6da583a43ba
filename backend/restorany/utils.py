"""HTTP plumbing shared by the app: CORS, per-request log context and response headers."""

from __future__ import annotations

from uuid import uuid4

import structlog
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .settings import settings

REQUEST_ID_HEADER = "X-Request-ID"
# path parameters copied into the log context of every request
LOGGED_PATH_PARAMS = ("venue_id", "review_id", "user_id", "visit_id")
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}
HSTS = "max-age=63072000; includeSubDomains"


def add_cors(app):
    origins = settings.allow_origins
    if not origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind a request ID for the duration of a request and harden the response.

    Reuses an incoming X-Request-ID header or generates a UUID, binds it with
    the method and path into the structlog context, and echoes it on the
    response together with the security headers.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        with structlog.contextvars.bound_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        ):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        for key, value in SECURITY_HEADERS.items():
            response.headers.setdefault(key, value)
        if request.url.scheme == "https":
            response.headers.setdefault("Strict-Transport-Security", HSTS)
        return response


async def bind_path_params(request: Request) -> None:
    """Router dependency: add venue/review/user/visit ids from the path to the log context."""
    ids = {key: request.path_params[key] for key in LOGGED_PATH_PARAMS if key in request.path_params}
    if ids:
        structlog.contextvars.bind_contextvars(**ids)


def add_request_context(app):
    app.add_middleware(RequestContextMiddleware)
