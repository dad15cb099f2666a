import logging
import time
from typing import List

from fastapi import Request
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import PayloadTooLargeError, error_response

logger = logging.getLogger("cleartext.requests")


def _log_request(request: Request, status_code: int, start: float) -> None:
    ms = int((time.perf_counter() - start) * 1000)
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        "%s %s -> %s (%sms) [%s]",
        request.method,
        request.url.path,
        status_code,
        ms,
        request.headers.get("origin") or "no-origin",
    )


async def log_requests(request: Request, call_next):
    """Log method, path, status, latency and origin for every request."""
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # Unhandled errors are rendered as 500 further out, by ServerErrorMiddleware
        _log_request(request, 500, start)
        raise
    _log_request(request, response.status_code, start)
    return response


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes`` with 413.

    A declared Content-Length is checked up front. Bodies without one
    (chunked uploads) are read and counted before the app sees them, then
    replayed to it in a single message.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0
            if declared > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        chunks: List[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = error_response(PayloadTooLargeError.for_limit(self.max_bytes))
        await response(scope, receive, send)
