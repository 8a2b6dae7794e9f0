"""
Admin schemas: user management, analytics, system health, activity log and
counselor approval.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from typing_extensions import Literal

from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

UserRole = Literal["patient", "counselor", "admin"]
SystemStatus = Literal["operational", "degraded", "maintenance", "offline"]
Severity = Literal["info", "warning", "critical"]
CounselorApprovalStatus = Literal["approved", "pending", "needs_more_info", "rejected", "suspended"]


class AdminUser(CamelModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole = "patient"
    is_verified: bool = False
    created_at: UtcDatetime
    last_login: Optional[UtcDatetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AdminUser":
        return cls(
            id=str(row["id"]),
            email=row.get("email") or "",
            full_name=row.get("full_name"),
            role=row.get("role") or "patient",
            is_verified=bool(row.get("is_verified") or False),
            created_at=row.get("created_at") or utcnow(),
            last_login=row.get("last_login"),
        )


class AdminUserList(CamelModel):
    users: List[AdminUser]
    total: int = 0
    limit: int = 20
    offset: int = 0


class UserAnalytics(CamelModel):
    total: int = 0
    patients: int = 0
    counselors: int = 0
    admins: int = 0
    new_this_month: int = 0
    active_this_month: int = 0


class SessionAnalytics(CamelModel):
    total: int = 0
    scheduled: int = 0
    completed: int = 0
    cancelled: int = 0
    this_month: int = 0


class ResourceAnalytics(CamelModel):
    total: int = 0
    public: int = 0
    private: int = 0
    views: int = 0
    downloads: int = 0


class ChatAnalytics(CamelModel):
    total: int = 0
    active: int = 0
    messages: int = 0
    unread: int = 0


class NotificationAnalytics(CamelModel):
    total: int = 0
    unread: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)


class Analytics(CamelModel):
    users: UserAnalytics = Field(default_factory=UserAnalytics)
    sessions: SessionAnalytics = Field(default_factory=SessionAnalytics)
    resources: ResourceAnalytics = Field(default_factory=ResourceAnalytics)
    chats: ChatAnalytics = Field(default_factory=ChatAnalytics)
    notifications: NotificationAnalytics = Field(default_factory=NotificationAnalytics)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Analytics":
        return cls(
            users=UserAnalytics.model_validate(row.get("users") or {}),
            sessions=SessionAnalytics.model_validate(row.get("sessions") or {}),
            resources=ResourceAnalytics.model_validate(row.get("resources") or {}),
            chats=ChatAnalytics.model_validate(row.get("chats") or {}),
            notifications=NotificationAnalytics.model_validate(row.get("notifications") or {}),
        )


class AnalyticsQueryParams(CamelModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    group_by: Optional[Literal["day", "week", "month"]] = None


class UserQueryParams(CamelModel):
    role: Optional[UserRole] = None
    search: Optional[str] = None
    is_verified: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1, le=100)
    offset: Optional[int] = Field(None, ge=0)


class UpdateUserRoleInput(CamelModel):
    role: UserRole


class SystemHealthStatus(CamelModel):
    """Last reported state of one platform component."""
    id: str
    component: str
    status: SystemStatus
    severity: Severity = "info"
    summary: Optional[str] = None
    details: Optional[str] = None
    telemetry: Dict[str, Any] = Field(default_factory=dict)
    last_checked_at: UtcDatetime
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SystemHealthStatus":
        return cls(
            id=str(row["id"]),
            component=row["component"],
            status=row["status"],
            severity=row.get("severity") or "info",
            summary=row.get("summary"),
            details=row.get("details"),
            telemetry=row.get("telemetry") or {},
            last_checked_at=row.get("last_checked_at") or utcnow(),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class UpsertSystemHealthInput(CamelModel):
    status: SystemStatus
    severity: Severity = "info"
    summary: Optional[str] = None
    details: Optional[str] = None
    telemetry: Dict[str, Any] = Field(default_factory=dict)
    last_checked_at: UtcDatetime = Field(default_factory=utcnow)


class AdminActivityEntry(CamelModel):
    id: str
    actor_id: Optional[str] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    summary: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AdminActivityEntry":
        return cls(
            id=str(row["id"]),
            actor_id=row.get("actor_id"),
            action=row["action"],
            target_type=row.get("target_type"),
            target_id=row.get("target_id"),
            summary=row.get("summary"),
            metadata=row.get("metadata") or {},
            created_at=row.get("created_at") or utcnow(),
        )


class CounselorApprovalInput(CamelModel):
    counselor_id: str
    approval_status: CounselorApprovalStatus
    approval_notes: Optional[str] = None
    visibility_settings: Optional[Dict[str, Any]] = None

    @field_validator("counselor_id")
    @classmethod
    def validate_counselor_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("counselorId is required")
        return v


class CounselorApproval(CamelModel):
    """Counselor profile after an approval review, with its uploaded documents."""
    id: str
    full_name: Optional[str] = None
    role: UserRole = "counselor"
    approval_status: CounselorApprovalStatus
    approval_notes: Optional[str] = None
    approval_submitted_at: Optional[UtcDatetime] = None
    approval_reviewed_at: Optional[UtcDatetime] = None
    approval_reviewed_by: Optional[str] = None
    visibility_settings: Dict[str, Any] = Field(default_factory=dict)
    documents: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CounselorApproval":
        return cls(
            id=str(row["id"]),
            full_name=row.get("full_name"),
            role=row.get("role") or "counselor",
            approval_status=row["approval_status"],
            approval_notes=row.get("approval_notes"),
            approval_submitted_at=row.get("approval_submitted_at"),
            approval_reviewed_at=row.get("approval_reviewed_at"),
            approval_reviewed_by=row.get("approval_reviewed_by"),
            visibility_settings=row.get("visibility_settings") or {},
            documents=row.get("counselor_documents") or [],
        )
