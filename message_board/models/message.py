"""Message model type definitions for database operations.

The table shape itself, including the ``by_user`` index over ``user_id``,
lives in db/migrations/0001_create_messages.sql.
"""

from typing import TypedDict

MESSAGES_TABLE = "messages"

# Every read filters on this column; the by_user index covers it.
BY_USER_COLUMN = "user_id"


class Message(TypedDict):
    """Message table row representation.

    Rows are write-once: there is no update or delete path.
    """

    id: str
    user_id: str
    content: str
    created_at: int  # milliseconds since epoch, assigned server-side


class MessageCreate(TypedDict):
    """Data required to insert a new message (id is assigned by the store)."""

    user_id: str
    content: str
    created_at: int
