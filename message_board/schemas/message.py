"""Message Pydantic schemas for API request/response models.

Wire keys are camelCase (``userId``, ``createdAt``); attribute names stay
snake_case to match the table columns.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageCreate(BaseModel):
    """Schema for submitting a new message.

    Content is stored verbatim. Empty strings are accepted; the client is
    expected to block blank submissions.
    """

    model_config = ConfigDict(from_attributes=True)

    content: str = Field(..., description="Message content")


class MessageResponse(BaseModel):
    """Schema for a single stored message."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(description="Message unique identifier")
    user_id: str = Field(description="Subject that created the message")
    content: str = Field(description="Message content")
    created_at: int = Field(description="Creation time in milliseconds since epoch")


class MessageListResponse(BaseModel):
    """Schema for the current user's messages, most recent first."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    messages: list[MessageResponse] = Field(default_factory=list, description="List of messages")
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page; pass back as ?cursor=",
    )
    has_more: bool = Field(default=False, description="Whether more results exist")

    @classmethod
    def empty(cls) -> "MessageListResponse":
        """Result returned when no identity is present under the lenient policy."""
        return cls(messages=[], next_cursor=None, has_more=False)
