"""
Shared pydantic base classes and field types.

Wire rows coming from the data store are snake_case; the client-facing view
models serialize to camelCase through ``model_dump(by_alias=True)``.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_view(self) -> Dict[str, Any]:
        """Client-facing camelCase representation."""
        return self.model_dump(by_alias=True, mode="json")

    def to_payload(self) -> Dict[str, Any]:
        """Request body / query representation, unset fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
