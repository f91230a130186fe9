"""Liveness, readiness and token checks for deployments."""

from fastapi import APIRouter, Response, status

from message_board.api.deps import CurrentUser
from message_board.core.config import get_settings
from message_board.core.message_events import get_message_broker
from message_board.core.supabase import check_database_connection
from message_board.schemas.auth import AuthenticatedResponse
from message_board.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Answers as long as the process is up. Touches no collaborator.",
)
async def health_check() -> HealthResponse:
    """Report liveness and the active list identity policy."""
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        list_policy=get_settings().messages_list_policy.value,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Message store reachable and broker accepting subscribers"},
        503: {"description": "Message store unreachable or broker closed"},
    },
    summary="Readiness check",
    description="Probes the message store and the live-update broker.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check that messages can be stored and streamed.

    Args:
        response: Used to switch the status code to 503.

    Returns:
        ReadinessResponse: Database and broker checks plus the open stream count.
    """
    broker = get_message_broker()
    checks = [
        await check_database_connection(),
        CheckResult(
            name="message_broker",
            healthy=not broker.closed,
            error="broker is closed" if broker.closed else None,
        ),
    ]

    readiness = ReadinessResponse.from_checks(checks, live_subscribers=broker.subscriber_count())
    if readiness.status is HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return readiness


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify token verification is configured correctly.",
    responses={401: {"description": "Authentication required or invalid token"}},
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Return the identity carried by the caller's token."""
    return AuthenticatedResponse(user_id=user.user_id, email=user.email, role=user.role)
