"""
Notification schemas.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field
from typing_extensions import Literal

from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

NotificationType = Literal["session", "message", "system", "resource"]


class Notification(CamelModel):
    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType = "system"
    link: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Notification":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row.get("title") or "",
            message=row.get("message") or "",
            type=row.get("type") or "system",
            link=row.get("link"),
            metadata=row.get("metadata") or {},
            is_read=bool(row.get("is_read") or False),
            created_at=row.get("created_at") or utcnow(),
        )


class NotificationList(CamelModel):
    notifications: List[Notification]
    total: int = 0
    unread_count: int = 0


class CreateNotificationInput(CamelModel):
    user_id: str
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType = "system"
    link: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class NotificationQueryParams(CamelModel):
    is_read: Optional[bool] = None
    type: Optional[NotificationType] = None
    limit: Optional[int] = Field(None, ge=1, le=100)
    offset: Optional[int] = Field(None, ge=0)


class MarkNotificationsReadInput(CamelModel):
    notification_ids: Optional[List[str]] = None
    mark_all: bool = False
