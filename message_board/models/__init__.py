"""Database model type definitions."""

from message_board.models.message import (
    BY_USER_COLUMN,
    MESSAGES_TABLE,
    Message,
    MessageCreate,
)

__all__ = [
    "BY_USER_COLUMN",
    "MESSAGES_TABLE",
    "Message",
    "MessageCreate",
]
