"""
Realtime event schemas.

Events arrive as snake_case rows, either bare or wrapped in a change envelope
``{"type": "INSERT|UPDATE|DELETE", "record": {...}, "old_record": {...}}``.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Literal

from carebridge.schemas.base import UtcDatetime
from carebridge.schemas.chat import Message

ChangeType = Literal["INSERT", "UPDATE", "DELETE"]


class RealtimeEnvelope(BaseModel):
    """Change envelope around a realtime row."""
    model_config = ConfigDict(extra="ignore")

    type: ChangeType = "INSERT"
    record: Dict[str, Any] = Field(default_factory=dict)
    old_record: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RealtimeEnvelope":
        if "record" in payload:
            return cls.model_validate(payload)
        return cls(type="INSERT", record=payload)


class RealtimeMessage(BaseModel):
    """Message row pushed by the realtime transport. Not ordered, not deduplicated."""
    model_config = ConfigDict(extra="ignore")

    id: str
    chat_id: str
    sender_id: str
    content: str = ""
    type: str = "text"
    file_url: Optional[str] = None
    is_read: bool = False
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None
    reactions: Optional[Dict[str, List[str]]] = None
    reply_to_id: Optional[str] = None
    edited_at: Optional[UtcDatetime] = None
    deleted_at: Optional[UtcDatetime] = None
    client_message_id: Optional[str] = None

    def to_message(self, is_read: Optional[bool] = None) -> Message:
        return Message(
            id=self.id,
            chat_id=self.chat_id,
            sender_id=self.sender_id,
            content=self.content,
            type=self.type if self.type in ("text", "image", "file") else "text",
            file_url=self.file_url,
            is_read=self.is_read if is_read is None else is_read,
            created_at=self.created_at,
            updated_at=self.updated_at or self.created_at,
            reactions=self.reactions,
            reply_to_id=self.reply_to_id,
            edited_at=self.edited_at,
            deleted_at=self.deleted_at,
            client_message_id=self.client_message_id,
        )


class RealtimeNotification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    title: str
    message: str
    type: str = "system"
    link: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    is_read: bool = False
    created_at: UtcDatetime


class RealtimeSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    patient_id: str
    counselor_id: str
    date: str
    time: str
    duration: int = 0
    type: str = "video"
    status: str = "scheduled"
    notes: Optional[str] = None
    updated_at: Optional[UtcDatetime] = None


class RealtimeChatUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    updated_at: UtcDatetime


class RealtimeProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    role: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    updated_at: Optional[UtcDatetime] = None
