"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header

from message_board.api.middleware.auth import AuthError, decode_jwt
from message_board.api.middleware.error_handler import AuthenticationError
from message_board.schemas.auth import UserContext
from message_board.services.message_service import MessageService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Resolve the caller's identity from a required bearer token.

    Failures raise ``AuthenticationError`` so they render through the error
    middleware like every other API error. The ``error`` code is the
    lower-cased ``AuthErrorCode`` (``token_expired``, ``invalid_signature``,
    ``invalid_token``).

    Args:
        authorization: The Authorization header value.

    Returns:
        UserContext: The verified identity.

    Raises:
        AuthenticationError: 401 if the header is missing or malformed, or
            the token does not verify.
    """
    if not authorization:
        raise AuthenticationError("Authorization header required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format. Expected: Bearer <token>")

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        raise AuthenticationError(e.message, error_type=e.code.value.lower()) from e


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Resolve the caller's identity if one was presented.

    No header means no identity (None); the message service decides what
    that means. A header that is present but does not verify is still a 401.
    """
    if not authorization:
        return None

    return await get_current_user(authorization)


def get_message_service() -> MessageService:
    """Provide a MessageService bound to the shared client and broker."""
    return MessageService()


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]
Messages = Annotated[MessageService, Depends(get_message_service)]
