"""Environment-driven settings for the message board."""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ListPolicy(str, Enum):
    """How the message list handles requests without an identity."""

    STRICT = "strict"  # reject with 401
    LENIENT = "lenient"  # answer with an empty list


class Settings(BaseSettings):
    """Service settings, read from the process environment and ``.env``.

    Names are case-insensitive. The Supabase URL and keys have no default,
    so the app refuses to start without them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="message-board-backend", description="Name used in startup logs")
    app_env: str = Field(default="development", description="Deployment environment label")
    debug: bool = Field(default=False, description="Serve API docs and enable reload")
    log_level: str = Field(default="INFO", description="Root log level")

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated origins allowed to call the API from a browser",
    )

    # Message store
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Backend key for the messages table")

    # Identity provider
    supabase_signing_key_jwk: str = Field(
        ...,
        description="Public JWK (JSON string) that access tokens are verified against",
    )
    jwt_audience: str | None = Field(default=None, description="Expected 'aud' claim, unchecked when unset")

    # Messages
    messages_list_policy: ListPolicy = Field(
        default=ListPolicy.STRICT,
        description="Behaviour of the message list when no identity is presented",
    )
    messages_max_page_size: int = Field(default=100, ge=1, description="Upper bound for the list 'limit' parameter")
    message_stream_queue_size: int = Field(
        default=32,
        ge=1,
        description="Pending change notifications buffered per live subscriber",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def list_requires_identity(self) -> bool:
        """Whether listing messages without an identity is an error."""
        return self.messages_list_policy == ListPolicy.STRICT


@lru_cache
def get_settings() -> Settings:
    """Settings for this process, built on first use.

    Tests call ``get_settings.cache_clear()`` after changing the environment.
    """
    return Settings()
