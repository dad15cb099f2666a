import logging
from typing import Sequence

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from .errors import ForbiddenError, error_response

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type"]


class AllowListCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers 403 to any origin outside the allow-list.

    Requests without an Origin header (curl, server-to-server) pass through.
    Every OPTIONS request that gets past the allow-list is answered 200 with the
    fixed allow-methods/allow-headers; the browser enforces them.
    """

    def __init__(self, app: ASGIApp, allow_origins: Sequence[str] = ()) -> None:
        super().__init__(
            app,
            allow_origins=list(allow_origins),
            allow_methods=ALLOWED_METHODS,
            allow_headers=ALLOWED_HEADERS,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            origin = headers.get("origin")
            if origin and not self.is_allowed_origin(origin=origin):
                logger.warning("Blocked request from disallowed origin %s", origin)
                response = error_response(ForbiddenError.for_origin(origin))
                await response(scope, receive, send)
                return
            if scope["method"] == "OPTIONS":
                response = self.preflight_response(request_headers=headers)
                await response(scope, receive, send)
                return
        await super().__call__(scope, receive, send)

    def preflight_response(self, request_headers: Headers) -> Response:
        headers = dict(self.preflight_headers)
        origin = request_headers.get("origin")
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
        return PlainTextResponse("OK", status_code=200, headers=headers)
