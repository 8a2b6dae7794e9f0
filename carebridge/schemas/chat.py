"""
Chat schemas: messages, conversation summaries and request inputs.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from typing_extensions import Literal

from carebridge.core.config import settings
from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

MessageType = Literal["text", "image", "file"]


class Message(CamelModel):
    """A chat message as held in the client-side message list."""
    id: str = Field(..., description="Durable id, or a temporary id for unconfirmed sends")
    chat_id: str
    sender_id: str
    receiver_id: Optional[str] = None
    content: str = ""
    type: MessageType = "text"
    file_url: Optional[str] = None
    is_read: bool = False
    created_at: UtcDatetime
    updated_at: UtcDatetime
    reactions: Optional[Dict[str, List[str]]] = None
    reply_to_id: Optional[str] = None
    edited_at: Optional[UtcDatetime] = None
    deleted_at: Optional[UtcDatetime] = None
    client_message_id: Optional[str] = Field(None, description="Correlation id of the optimistic send")

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(settings.temp_id_prefix)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Message":
        """Map a ``messages`` table row to a Message."""
        created_at = row.get("created_at") or utcnow()
        return cls(
            id=str(row["id"]),
            chat_id=str(row["chat_id"]),
            sender_id=str(row["sender_id"]),
            receiver_id=row.get("receiver_id"),
            content=row.get("content") or "",
            type=row.get("type") or "text",
            file_url=row.get("file_url") or None,
            is_read=bool(row.get("is_read") or False),
            created_at=created_at,
            updated_at=row.get("updated_at") or created_at,
            reactions=row.get("reactions"),
            reply_to_id=row.get("reply_to_id"),
            edited_at=row.get("edited_at"),
            deleted_at=row.get("deleted_at"),
            client_message_id=row.get("client_message_id"),
        )


class Chat(CamelModel):
    """Conversation summary shown in the chat list."""
    id: str
    participants: List[str] = Field(default_factory=list)
    last_message: Optional[Message] = None
    unread_count: int = 0
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @field_validator("unread_count")
    @classmethod
    def clamp_unread_count(cls, v):
        return max(0, v)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Chat":
        """Map a ``chats`` row (optionally enriched with last_message/unread_count)."""
        created_at = row.get("created_at") or utcnow()
        last_message = row.get("last_message")
        return cls(
            id=str(row["id"]),
            participants=[str(p) for p in row.get("participants") or []],
            last_message=Message.from_row(last_message) if last_message else None,
            unread_count=int(row.get("unread_count") or 0),
            created_at=created_at,
            updated_at=row.get("updated_at") or created_at,
        )


class ChatList(CamelModel):
    chats: List[Chat]
    total: int = 0


class MessagePage(CamelModel):
    messages: List[Message]
    total: int = 0


class SendMessageInput(CamelModel):
    """Schema for sending a chat message."""
    chat_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType = "text"
    file_url: Optional[str] = None
    reply_to_id: Optional[str] = None
    client_message_id: Optional[str] = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("Message content cannot be empty or whitespace only")
        return v


class CreateChatInput(CamelModel):
    participant_id: str = Field(..., min_length=1)


class ChatQueryParams(CamelModel):
    participant_id: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1, le=100)
    offset: Optional[int] = Field(None, ge=0)


class MessagesQueryParams(CamelModel):
    limit: Optional[int] = Field(None, ge=1, le=100)
    before: Optional[datetime] = None
    after: Optional[datetime] = None


class MarkReadInput(CamelModel):
    """Either explicit message ids or ``mark_all``; defaults to marking all."""
    message_ids: Optional[List[str]] = None
    mark_all: bool = False

    @model_validator(mode="after")
    def default_to_mark_all(self):
        if not self.message_ids:
            self.message_ids = None
            self.mark_all = True
        return self


class ChatSummary(CamelModel):
    """Chat rollup shown on the dashboards."""
    chat_count: int = 0
    unread_total: int = 0
    latest_chat: Optional[Chat] = None

    @classmethod
    def from_chats(cls, chats: List[Chat]) -> "ChatSummary":
        return cls(
            chat_count=len(chats),
            unread_total=sum(c.unread_count for c in chats),
            latest_chat=max(chats, key=lambda c: c.updated_at) if chats else None,
        )
