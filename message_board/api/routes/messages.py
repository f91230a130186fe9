"""Message API routes."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Query, Response, status
from fastapi.responses import StreamingResponse

from message_board.api.deps import Messages, OptionalUser
from message_board.core.config import get_settings
from message_board.schemas.message import MessageCreate, MessageListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])

SSE_MEDIA_TYPE = "text/event-stream"


def format_sse(snapshot: MessageListResponse, event: str = "snapshot") -> str:
    """Render a list snapshot as one Server-Sent Events frame."""
    return f"event: {event}\ndata: {snapshot.model_dump_json(by_alias=True)}\n\n"


def _cap_limit(limit: int | None) -> int | None:
    settings = get_settings()
    if limit is None:
        return None
    return min(limit, settings.messages_max_page_size)


@router.post(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Submit a message",
    description="Stores a message owned by the authenticated user.",
    responses={401: {"description": "No identity presented or token invalid"}},
)
async def add_message(
    data: MessageCreate,
    user: OptionalUser,
    service: Messages,
) -> Response:
    """Submit a message as the current user.

    The identity check happens in the service so an anonymous call never
    reaches the store.

    Args:
        data: Message content.
        user: Identity from the bearer token, if any.
        service: Message service.

    Returns:
        Response: Empty 204 on success.
    """
    await service.add_message(user, data.content)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "",
    response_model=MessageListResponse,
    summary="List my messages",
    description="Returns the current user's messages, most recent first.",
    responses={
        400: {"description": "Cursor not issued by this service"},
        401: {"description": "No identity presented (strict policy) or token invalid"},
    },
)
async def list_messages(
    user: OptionalUser,
    service: Messages,
    limit: int | None = Query(default=None, ge=1, description="Page size; omit for full history"),
    cursor: str | None = Query(default=None, description="nextCursor from the previous page"),
) -> MessageListResponse:
    """List the current user's messages.

    Args:
        user: Identity from the bearer token, if any.
        service: Message service.
        limit: Optional page size, capped at MESSAGES_MAX_PAGE_SIZE.
        cursor: Optional pagination cursor.

    Returns:
        MessageListResponse: Messages and pagination info.
    """
    return await service.list_messages(user, limit=_cap_limit(limit), cursor=cursor)


@router.get(
    "/stream",
    summary="Subscribe to my messages",
    description=(
        "Server-Sent Events stream. Sends a 'snapshot' event with the current list "
        "on connect and again after every new message by the same user."
    ),
    response_class=StreamingResponse,
    responses={
        200: {"content": {SSE_MEDIA_TYPE: {}}},
        401: {"description": "No identity presented (strict policy) or token invalid"},
    },
)
async def stream_messages(
    user: OptionalUser,
    service: Messages,
    limit: int | None = Query(default=None, ge=1, description="Page size applied to each snapshot"),
) -> StreamingResponse:
    """Stream list snapshots for the current user.

    The first snapshot is produced before the response starts so identity
    failures surface as a regular 401.

    Args:
        user: Identity from the bearer token, if any.
        service: Message service.
        limit: Optional page size for each snapshot.

    Returns:
        StreamingResponse: text/event-stream of snapshots.
    """
    snapshots = service.watch_messages(user, limit=_cap_limit(limit))
    first = await anext(snapshots)

    async def event_stream() -> AsyncIterator[str]:
        try:
            yield format_sse(first)
            async for snapshot in snapshots:
                yield format_sse(snapshot)
        finally:
            await snapshots.aclose()
            logger.debug("Message stream closed for user %s", user.user_id if user else None)

    return StreamingResponse(
        event_stream(),
        media_type=SSE_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
