"""Message business logic service."""

import logging
import time
from collections.abc import AsyncIterator
from uuid import UUID

from message_board.api.middleware.error_handler import InvalidCursorError, UnauthenticatedError
from message_board.core.config import get_settings
from message_board.core.message_events import MessageEvent, get_message_broker
from message_board.core.supabase import get_supabase_client
from message_board.models.message import BY_USER_COLUMN, MESSAGES_TABLE, Message, MessageCreate
from message_board.schemas.auth import UserContext
from message_board.schemas.message import MessageListResponse, MessageResponse

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current server time in milliseconds since epoch."""
    return int(time.time() * 1000)


def encode_cursor(message: MessageResponse) -> str:
    """Cursor pointing just past ``message`` in (created_at, id) order."""
    return f"{message.created_at}_{message.id}"


def decode_cursor(cursor: str) -> tuple[int, str]:
    """Split a cursor into its ``created_at`` and ``id`` parts.

    Both parts end up inside a PostgREST filter string, so they are parsed
    strictly: an integer and a canonical UUID.

    Raises:
        InvalidCursorError: If the cursor is malformed.
    """
    created_at, _, message_id = cursor.partition("_")
    try:
        return int(created_at), str(UUID(message_id))
    except ValueError as e:
        raise InvalidCursorError(cursor) from e


class MessageService:
    """Service for submitting and listing the current user's messages.

    Every operation is scoped to the verified identity passed in; user ids
    are never taken from request input.
    """

    def __init__(self) -> None:
        """Initialize message service with Supabase client and event broker."""
        self.client = get_supabase_client()
        self.broker = get_message_broker()
        self.settings = get_settings()

    async def add_message(self, user: UserContext | None, content: str) -> MessageResponse:
        """Store a new message owned by ``user``.

        Content is stored verbatim. Identical submissions produce separate
        rows.

        Args:
            user: The verified identity, or None when the caller presented none.
            content: Message text.

        Returns:
            MessageResponse: The stored row, including its assigned id.

        Raises:
            UnauthenticatedError: If no identity was presented. Nothing is written.
        """
        if user is None:
            raise UnauthenticatedError()

        row: MessageCreate = {
            "user_id": user.user_id,
            "content": content,
            "created_at": now_ms(),
        }

        response = self.client.table(MESSAGES_TABLE).insert(row).execute()
        message = MessageResponse.model_validate(response.data[0])

        logger.info("Message %s stored for user %s", message.id, user.user_id)

        self.broker.publish(
            MessageEvent(
                user_id=message.user_id,
                message_id=message.id,
                created_at=message.created_at,
            )
        )
        return message

    async def list_messages(
        self,
        user: UserContext | None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> MessageListResponse:
        """List ``user``'s messages, most recent first.

        Without ``limit`` the full history is returned. With ``limit``, one
        extra row is fetched to determine ``has_more``. Rows are ordered by
        ``(created_at, id)`` descending and the cursor names the last row of
        the previous page, so rows sharing a millisecond are neither skipped
        nor repeated across pages.

        Args:
            user: The verified identity, or None when the caller presented none.
            limit: Optional page size.
            cursor: Optional ``next_cursor`` from a previous page.

        Returns:
            MessageListResponse: Messages with pagination info.

        Raises:
            UnauthenticatedError: If no identity was presented and the list
                policy is strict.
            InvalidCursorError: If ``cursor`` is not one this service issued.
        """
        if user is None:
            if self.settings.list_requires_identity:
                raise UnauthenticatedError()
            return MessageListResponse.empty()

        query = (
            self.client.table(MESSAGES_TABLE)
            .select("*")
            .eq(BY_USER_COLUMN, user.user_id)
            .order("created_at", desc=True)
            .order("id", desc=True)
        )

        if cursor is not None:
            created_at, message_id = decode_cursor(cursor)
            query = query.or_(
                f"created_at.lt.{created_at},"
                f"and(created_at.eq.{created_at},id.lt.{message_id})"
            )

        if limit is not None:
            query = query.limit(limit + 1)

        response = query.execute()
        rows: list[Message] = response.data or []

        has_more = limit is not None and len(rows) > limit
        if has_more:
            rows = rows[:limit]

        messages = [MessageResponse.model_validate(row) for row in rows]
        next_cursor = encode_cursor(messages[-1]) if has_more and messages else None

        return MessageListResponse(messages=messages, next_cursor=next_cursor, has_more=has_more)

    async def watch_messages(
        self,
        user: UserContext | None,
        limit: int | None = None,
    ) -> AsyncIterator[MessageListResponse]:
        """Yield the current list, then a fresh list after each change.

        The first snapshot is taken after subscribing so no insert between
        the two is missed. The iterator ends when the broker closes. Under
        the lenient policy a caller without identity gets one empty snapshot.

        Args:
            user: The verified identity, or None when the caller presented none.
            limit: Optional page size applied to every snapshot.

        Raises:
            UnauthenticatedError: If no identity was presented and the list
                policy is strict.
        """
        if user is None:
            if self.settings.list_requires_identity:
                raise UnauthenticatedError()
            yield MessageListResponse.empty()
            return

        async with self.broker.subscribe(user.user_id) as queue:
            yield await self.list_messages(user, limit=limit)

            while True:
                event = await queue.get()
                if event is None:
                    break
                # Collapse a burst of inserts into a single snapshot.
                while not queue.empty():
                    if queue.get_nowait() is None:
                        return
                yield await self.list_messages(user, limit=limit)
