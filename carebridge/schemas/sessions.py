"""
Counseling session schemas.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field
from typing_extensions import Literal

from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

SessionStatus = Literal["scheduled", "completed", "cancelled", "rescheduled"]
SessionType = Literal["video", "audio", "chat"]


class Session(CamelModel):
    id: str
    patient_id: str
    counselor_id: str
    date: str
    time: str
    duration: int = 60
    type: SessionType = "video"
    status: SessionStatus = "scheduled"
    notes: Optional[str] = None
    room_url: Optional[str] = None
    room_name: Optional[str] = None
    rating: Optional[int] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Session":
        created_at = row.get("created_at") or utcnow()
        return cls(
            id=str(row["id"]),
            patient_id=str(row["patient_id"]),
            counselor_id=str(row["counselor_id"]),
            date=str(row["date"]),
            time=str(row["time"]),
            duration=int(row.get("duration") or 60),
            type=row.get("type") or "video",
            status=row.get("status") or "scheduled",
            notes=row.get("notes"),
            room_url=row.get("jitsi_room_url"),
            room_name=row.get("jitsi_room_name"),
            rating=row.get("rating"),
            created_at=created_at,
            updated_at=row.get("updated_at") or created_at,
        )


class SessionList(CamelModel):
    sessions: List[Session]
    total: int = 0


class SessionStats(CamelModel):
    total_sessions: int = 0
    total_scheduled: int = 0
    upcoming_sessions: int = 0
    completed_sessions: int = 0
    cancelled_sessions: int = 0
    next_session_at: Optional[UtcDatetime] = None
    last_completed_session_at: Optional[UtcDatetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SessionStats":
        return cls(
            total_sessions=int(row.get("total_sessions") or 0),
            total_scheduled=int(row.get("total_scheduled") or 0),
            upcoming_sessions=int(row.get("upcoming_sessions") or 0),
            completed_sessions=int(row.get("completed_sessions") or 0),
            cancelled_sessions=int(row.get("cancelled_sessions") or 0),
            next_session_at=row.get("next_session_at"),
            last_completed_session_at=row.get("last_completed_session_at"),
        )


class SessionRoom(CamelModel):
    room_url: str
    room_name: str
    token: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SessionRoom":
        return cls(
            room_url=row["room_url"],
            room_name=row["room_name"],
            token=row.get("token"),
        )


class SessionCreate(CamelModel):
    patient_id: str
    counselor_id: str
    date: str
    time: str
    duration: int = Field(60, ge=15, le=240)
    type: SessionType = "video"
    notes: Optional[str] = None


class SessionUpdate(CamelModel):
    notes: Optional[str] = None
    duration: Optional[int] = Field(None, ge=15, le=240)
    rating: Optional[int] = Field(None, ge=1, le=5)


class RescheduleSessionInput(CamelModel):
    date: str
    time: str
    reason: Optional[str] = None


class SessionQueryParams(CamelModel):
    status: Optional[SessionStatus] = None
    patient_id: Optional[str] = None
    counselor_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(None, ge=1, le=100)
    offset: Optional[int] = Field(None, ge=0)
