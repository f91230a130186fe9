"""Access token verification against the identity provider's public JWK."""

import json
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWK

from message_board.core.config import get_settings
from message_board.schemas.auth import TokenPayload


class AuthErrorCode(str, Enum):
    """Why a token was refused. Lower-cased, these are the API error codes."""

    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """A token, or the key used to check it, could not be trusted."""

    def __init__(self, message: str, code: AuthErrorCode = AuthErrorCode.INVALID_TOKEN) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Checked in order, so subclasses come before DecodeError.
_JWT_FAILURES: tuple[tuple[type[jwt.PyJWTError], AuthErrorCode, str], ...] = (
    (jwt.ExpiredSignatureError, AuthErrorCode.TOKEN_EXPIRED, "Token has expired"),
    (jwt.InvalidSignatureError, AuthErrorCode.INVALID_SIGNATURE, "Invalid token signature"),
    (jwt.MissingRequiredClaimError, AuthErrorCode.INVALID_TOKEN, "Token missing required claim: {}"),
    (jwt.DecodeError, AuthErrorCode.INVALID_TOKEN, "Invalid token format: {}"),
)


def _to_auth_error(error: Exception) -> AuthError:
    for error_type, code, template in _JWT_FAILURES:
        if isinstance(error, error_type):
            return AuthError(template.format(error), code)
    return AuthError(f"Token validation failed: {error}")


@lru_cache
def get_signing_key() -> PyJWK:
    """Parse SUPABASE_SIGNING_KEY_JWK once per process.

    The key type fixes the algorithm tokens must use: EC P-256 means ES256,
    RSA means RS256 and ``oct`` means HS256. Tokens signed any other way are
    refused.

    Raises:
        AuthError: If the key is unset, not JSON, or not a usable JWK.
    """
    raw = get_settings().supabase_signing_key_jwk
    if not raw:
        raise AuthError("Signing key not configured")

    try:
        return PyJWK.from_dict(json.loads(raw))
    except json.JSONDecodeError as e:
        raise AuthError(f"Invalid signing key JWK format: {e}") from e
    except jwt.PyJWTError as e:
        raise AuthError(f"Unsupported signing key: {e}") from e


def decode_jwt(token: str) -> TokenPayload:
    """Verify ``token`` and return its claims.

    Signature, ``exp`` and ``iat`` are always checked and ``sub`` must be a
    non-blank string, since it becomes the owner of every message the caller
    writes. ``aud`` is checked only when JWT_AUDIENCE is set.

    Args:
        token: The raw JWT from the bearer header.

    Returns:
        TokenPayload: The verified claims.

    Raises:
        AuthError: Coded ``TOKEN_EXPIRED``, ``INVALID_SIGNATURE`` or
            ``INVALID_TOKEN``.
    """
    audience = get_settings().jwt_audience
    signing_key = get_signing_key()

    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            signing_key.key,
            algorithms=[signing_key.algorithm_name],
            audience=audience,
            options={
                "verify_aud": audience is not None,
                "require": ["exp", "iat", "sub"],
            },
        )
    except Exception as e:
        raise _to_auth_error(e) from e

    subject = claims["sub"]
    if not isinstance(subject, str) or not subject.strip():
        raise AuthError("Token has an empty subject")

    return TokenPayload.model_validate(claims)
