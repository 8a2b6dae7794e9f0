"""
Resource library schemas.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field
from typing_extensions import Literal

from carebridge.schemas.base import CamelModel, UtcDatetime, utcnow

ResourceType = Literal["audio", "pdf", "video", "article"]


class Resource(CamelModel):
    id: str
    title: str
    description: str = ""
    type: ResourceType
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    publisher: str = ""
    youtube_url: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    views: int = 0
    downloads: int = 0
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Resource":
        created_at = row.get("created_at") or utcnow()
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row.get("description") or "",
            type=row["type"],
            url=row.get("url"),
            thumbnail=row.get("thumbnail"),
            tags=row.get("tags") or [],
            is_public=bool(row.get("is_public", True)),
            publisher=str(row.get("publisher") or ""),
            youtube_url=row.get("youtube_url"),
            content=row.get("content"),
            category=row.get("category"),
            views=int(row.get("views") or 0),
            downloads=int(row.get("downloads") or 0),
            created_at=created_at,
            updated_at=row.get("updated_at") or created_at,
        )


class ResourceList(CamelModel):
    resources: List[Resource]
    total: int = 0


class ResourceMetrics(CamelModel):
    """Aggregates over a set of resources for dashboards."""
    total: int = 0
    public: int = 0
    private: int = 0
    views: int = 0
    downloads: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_resources(cls, resources: List[Resource]) -> "ResourceMetrics":
        by_type: Dict[str, int] = {}
        for resource in resources:
            by_type[resource.type] = by_type.get(resource.type, 0) + 1
        public = sum(1 for r in resources if r.is_public)
        return cls(
            total=len(resources),
            public=public,
            private=len(resources) - public,
            views=sum(r.views for r in resources),
            downloads=sum(r.downloads for r in resources),
            by_type=by_type,
        )


class ResourceCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    type: ResourceType
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    youtube_url: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None


class ResourceUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    content: Optional[str] = None
    category: Optional[str] = None


class ResourceQueryParams(CamelModel):
    type: Optional[ResourceType] = None
    tags: Optional[str] = None
    search: Optional[str] = None
    is_public: Optional[bool] = None
    publisher: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1, le=100)
    offset: Optional[int] = Field(None, ge=0)
