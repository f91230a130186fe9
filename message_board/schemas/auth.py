"""Identity models: verified token claims and the per-request user."""

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """The identity a request acts as.

    ``user_id`` is the token subject taken verbatim; it is the only field
    that scopes message reads and writes.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Stable subject identifier (from JWT sub claim)")
    email: str | None = Field(default=None, description="Email claim, if the provider sets one")
    role: str | None = Field(default=None, description="Role claim, if the provider sets one")


class TokenPayload(BaseModel):
    """Claims read from a verified access token."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject, the user's opaque identifier")
    email: str | None = Field(default=None, description="Email claim")
    role: str | None = Field(default=None, description="Role claim")
    exp: int = Field(description="Expiry, seconds since epoch")
    iat: int = Field(description="Issued at, seconds since epoch")
    aud: str | list[str] | None = Field(default=None, description="Audience claim")
    iss: str | None = Field(default=None, description="Issuer claim")

    def to_user_context(self) -> UserContext:
        return UserContext(user_id=self.sub, email=self.email, role=self.role)


class AuthenticatedResponse(BaseModel):
    """Body of /health/auth: echoes the identity a token resolved to."""

    model_config = ConfigDict(from_attributes=True)

    authenticated: bool = Field(default=True, description="Always true; failures are 401s")
    user_id: str = Field(description="Token subject")
    email: str | None = Field(default=None, description="Email claim, if present")
    role: str | None = Field(default=None, description="Role claim, if present")
