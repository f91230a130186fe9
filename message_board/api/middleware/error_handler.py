"""Error types raised by the message board and the middleware that renders them.

Every failure leaves the API as an ``ErrorResponse`` body. Identity failures
from the auth dependency and from the service both travel as ``APIError``
subclasses, so a client only has to understand one shape.
"""

import logging
from typing import Any, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from message_board.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Application error carrying an HTTP status and a stable error code.

    Subclasses fix ``status_code`` and a default ``error_type``; callers may
    narrow the code per raise (``token_expired`` vs ``invalid_token``).
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"

    def __init__(self, message: str, error_type: str | None = None) -> None:
        self.message = message
        if error_type is not None:
            self.error_type = error_type
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str]:
        return {}


class AuthenticationError(APIError):
    """The presented credentials were rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class UnauthenticatedError(AuthenticationError):
    """A handler that needs an identity was called without one."""

    error_type = "unauthenticated"

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class InvalidCursorError(APIError):
    """A list cursor that this service did not issue."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "invalid_cursor"

    def __init__(self, cursor: str) -> None:
        super().__init__(f"Invalid pagination cursor: {cursor!r}")


def render_error(error: APIError, request_id: str | None = None) -> JSONResponse:
    """Serialize ``error`` as an ``ErrorResponse`` with its status and headers."""
    body = ErrorResponse(error=error.error_type, message=error.message, request_id=request_id)
    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=error.headers,
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Turn exceptions escaping a route into ``ErrorResponse`` bodies.

    ``APIError`` keeps its status and message. Anything else is logged with
    its traceback and reported as a generic 500 so internals never reach the
    client.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route's response or the rendered error.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        logger.warning(
            "%s %s rejected: %s - %s",
            request.method,
            request.url.path,
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return render_error(e, request_id)

    except Exception:
        logger.exception(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": request_id},
        )
        return render_error(
            APIError("An unexpected error occurred", error_type="internal_error"),
            request_id,
        )
