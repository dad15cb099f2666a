import logging
from enum import Enum
from http import HTTPStatus
from typing import Callable, Dict

import httpx
import openai
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

MISSING_TEXT_MESSAGE = "Request body must include a non-empty 'text' string."


class GatewayError(Exception):
    """Base error carrying the HTTP status and the client-facing kind/message pair."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error, "message": self.message}


class BadRequestError(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"
    default_message = MISSING_TEXT_MESSAGE


class ForbiddenError(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"
    default_message = "CORS policy: Origin not allowed."

    @classmethod
    def for_origin(cls, origin: str) -> "ForbiddenError":
        return cls(f"CORS policy: Origin {origin} not allowed.")


class NotFoundError(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"
    default_message = "Route does not exist."

    @classmethod
    def for_route(cls, method: str, path: str) -> "NotFoundError":
        return cls(f"Route {method} {path} does not exist.")


class PayloadTooLargeError(GatewayError):
    status_code = 413
    error = "Payload Too Large"
    default_message = "Request body is too large."

    @classmethod
    def for_limit(cls, limit: int) -> "PayloadTooLargeError":
        return cls(f"Request body must not exceed {limit} bytes.")


class InternalServerError(GatewayError):
    pass


class UpstreamError(GatewayError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Upstream Error"
    default_message = "OpenAI Moderation API returned an error. Please try again."


class GatewayTimeoutError(GatewayError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error = "Gateway Timeout"
    default_message = "Could not reach OpenAI. Please try again shortly."


class UpstreamFailure(str, Enum):
    """Kinds of failure the moderation call can end in."""

    API_ERROR = "api_error"
    TRANSPORT_ERROR = "transport_error"
    UNEXPECTED = "unexpected"


_FAILURE_ERRORS: Dict[UpstreamFailure, Callable[[], GatewayError]] = {
    UpstreamFailure.API_ERROR: UpstreamError,
    UpstreamFailure.TRANSPORT_ERROR: GatewayTimeoutError,
    UpstreamFailure.UNEXPECTED: InternalServerError,
}


def classify_upstream_failure(exc: BaseException) -> UpstreamFailure:
    # APITimeoutError subclasses APIConnectionError; status errors are checked first
    if isinstance(exc, openai.APIStatusError):
        return UpstreamFailure.API_ERROR
    if isinstance(
        exc,
        (openai.APIConnectionError, httpx.TransportError, ConnectionResetError, TimeoutError),
    ):
        return UpstreamFailure.TRANSPORT_ERROR
    return UpstreamFailure.UNEXPECTED


def translate_upstream_failure(exc: BaseException) -> GatewayError:
    """Map an exception raised by the moderation call to the outbound error taxonomy."""
    kind = classify_upstream_failure(exc)
    if kind is UpstreamFailure.API_ERROR:
        logger.error(
            "OpenAI API error [%s]: %s", getattr(exc, "status_code", None), getattr(exc, "message", exc)
        )
    elif kind is UpstreamFailure.TRANSPORT_ERROR:
        logger.error("Network error reaching OpenAI: %s: %s", type(exc).__name__, exc)
    else:
        logger.error("Unexpected error in /moderate: %s", exc, exc_info=exc)
    return _FAILURE_ERRORS[kind]()


def error_response(err: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected %s %s body: %s", request.method, request.url.path, exc.errors())
        return error_response(BadRequestError(MISSING_TEXT_MESSAGE))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Wrong method on a known path counts as an unmatched route
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return error_response(NotFoundError.for_route(request.method, request.url.path))
        err = GatewayError(str(exc.detail))
        err.status_code = exc.status_code
        err.error = _reason_phrase(exc.status_code)
        return error_response(err)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return error_response(InternalServerError())


def _reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"
