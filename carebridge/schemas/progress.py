"""
Patient program progress schemas.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field
from typing_extensions import Literal

from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

ProgressStatus = Literal["not_started", "in_progress", "completed", "archived"]
ProgressItemStatus = Literal["not_started", "in_progress", "completed"]


class ProgressItem(CamelModel):
    id: str
    progress_id: str
    item_key: Optional[str] = None
    title: str
    status: ProgressItemStatus = "not_started"
    order_index: int = 0
    completed_at: Optional[UtcDatetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProgressItem":
        created_at = row.get("created_at") or utcnow()
        return cls(
            id=str(row["id"]),
            progress_id=str(row["progress_id"]),
            item_key=row.get("item_key"),
            title=row.get("title") or "",
            status=row.get("status") or "not_started",
            order_index=int(row.get("order_index") or 0),
            completed_at=row.get("completed_at"),
            metadata=row.get("metadata") or {},
            created_at=created_at,
            updated_at=row.get("updated_at") or created_at,
        )


class ProgressModule(CamelModel):
    id: str
    patient_id: str
    assigned_counselor_id: Optional[str] = None
    program_id: Optional[str] = None
    module_id: str
    module_title: Optional[str] = None
    status: ProgressStatus = "not_started"
    progress_percent: float = 0
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    last_activity_at: UtcDatetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    items: List[ProgressItem] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProgressModule":
        created_at = row.get("created_at") or utcnow()
        updated_at = row.get("updated_at") or created_at
        items = sorted(
            (ProgressItem.from_row(item) for item in row.get("patient_progress_items") or []),
            key=lambda item: item.order_index,
        )
        return cls(
            id=str(row["id"]),
            patient_id=str(row["patient_id"]),
            assigned_counselor_id=row.get("assigned_counselor_id"),
            program_id=row.get("program_id"),
            module_id=str(row["module_id"]),
            module_title=row.get("module_title"),
            status=row.get("status") or "not_started",
            # clamp to 0..100
            progress_percent=min(100.0, max(0.0, float(row.get("progress_percent") or 0))),
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
            last_activity_at=row.get("last_activity_at") or updated_at,
            metadata=row.get("metadata") or {},
            items=items,
            created_at=created_at,
            updated_at=updated_at,
        )


class ProgressSummary(CamelModel):
    """Dashboard rollup over a patient's modules."""
    modules: int = 0
    completed: int = 0
    in_progress: int = 0
    average_percent: float = 0

    @classmethod
    def from_modules(cls, modules: List[ProgressModule]) -> "ProgressSummary":
        if not modules:
            return cls()
        return cls(
            modules=len(modules),
            completed=sum(1 for m in modules if m.status == "completed"),
            in_progress=sum(1 for m in modules if m.status == "in_progress"),
            average_percent=round(sum(m.progress_percent for m in modules) / len(modules), 2),
        )


class UpsertProgressInput(CamelModel):
    module_id: str
    program_id: Optional[str] = None
    module_title: Optional[str] = None
    status: Optional[ProgressStatus] = None
    progress_percent: Optional[float] = Field(None, ge=0, le=100)
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    metadata: Optional[Dict[str, Any]] = None


class UpdateProgressItemInput(CamelModel):
    title: Optional[str] = None
    status: Optional[ProgressItemStatus] = None
    order_index: Optional[int] = None
    completed_at: Optional[UtcDatetime] = None
    metadata: Optional[Dict[str, Any]] = None


class CreateProgressItemInput(CamelModel):
    title: str = Field(..., min_length=1)
    item_key: Optional[str] = None
    status: ProgressItemStatus = "not_started"
    order_index: int = 0
    metadata: Optional[Dict[str, Any]] = None
