"""Response models shared by the health probes and the error middleware."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from message_board import __version__


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness payload. Also reports which list identity policy is active."""

    model_config = ConfigDict(from_attributes=True)

    status: HealthStatus = Field(description="Current health status")
    version: str = Field(default=__version__, description="API version")
    list_policy: str = Field(description="Identity policy of the message list (strict or lenient)")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")


class CheckResult(BaseModel):
    """Outcome of probing one collaborator."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(description="Collaborator name")
    healthy: bool = Field(description="Whether the collaborator answered")
    latency_ms: float | None = Field(default=None, description="Probe duration in milliseconds")
    error: str | None = Field(default=None, description="Failure reason when unhealthy")


class ReadinessResponse(BaseModel):
    """Readiness payload: the store and the live-update broker."""

    model_config = ConfigDict(from_attributes=True)

    status: HealthStatus = Field(description="HEALTHY only when every check passed")
    checks: list[CheckResult] = Field(default_factory=list, description="Individual check results")
    live_subscribers: int = Field(default=0, description="Open message streams in this process")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")

    @classmethod
    def from_checks(cls, checks: list[CheckResult], live_subscribers: int = 0) -> "ReadinessResponse":
        status = HealthStatus.HEALTHY if all(c.healthy for c in checks) else HealthStatus.UNHEALTHY
        return cls(status=status, checks=checks, live_subscribers=live_subscribers)


class ErrorResponse(BaseModel):
    """Body of every error the API returns.

    ``error`` is a stable machine-readable code such as ``unauthenticated``
    or ``token_expired``; ``message`` is for humans and may change.
    """

    model_config = ConfigDict(from_attributes=True)

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: str | None = Field(default=None, description="Echo of the X-Request-ID header")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
