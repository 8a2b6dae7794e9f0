"""
Dashboard data views: fetch-on-demand state holders with loading/error flags.
"""
import logging
from functools import partial
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from carebridge.core.exceptions import CarebridgeError
from carebridge.schemas.chat import ChatSummary
from carebridge.schemas.progress import ProgressModule
from carebridge.schemas.resources import ResourceMetrics
from carebridge.schemas.sessions import SessionStats
from carebridge.services.chat_api import ChatApi
from carebridge.services.progress_api import ProgressApi
from carebridge.services.resources_api import ResourcesApi
from carebridge.services.sessions_api import SessionsApi

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataView(Generic[T]):
    """
    Holds the result of one fetch coroutine.

    ``refresh()`` re-runs the fetch. A disabled view resets to ``empty``
    without fetching. Failures are recorded in ``error`` and logged.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        empty: Optional[T] = None,
        enabled: bool = True,
        name: str = "data",
        fallback_error: Optional[str] = None,
    ):
        self._fetch = fetch
        self.empty = empty
        self.enabled = enabled
        self.name = name
        self.fallback_error = fallback_error or f"Failed to load {name}"
        self.data: Optional[T] = empty
        self.loading = False
        self.error: Optional[str] = None

    async def refresh(self) -> Optional[T]:
        if not self.enabled:
            self.data = self.empty
            self.error = None
            self.loading = False
            return self.data

        self.loading = True
        self.error = None
        try:
            self.data = await self._fetch()
        except CarebridgeError as e:
            self.error = e.message or self.fallback_error
            logger.error(f"Error fetching {self.name}: {self.error}")
        finally:
            self.loading = False
        return self.data


def session_stats_view(
    api: SessionsApi,
    role: str,
    user_id: Optional[str] = None,
) -> DataView[Optional[SessionStats]]:
    """Session statistics for a patient or counselor dashboard."""
    if role == "counselor":
        fetch = partial(api.get_counselor_session_stats, user_id)
    else:
        fetch = partial(api.get_patient_session_stats, user_id)
    return DataView(
        fetch,
        empty=None,
        enabled=role in ("patient", "counselor"),
        name="session stats",
    )


def progress_view(api: ProgressApi, patient_id: Optional[str] = None) -> DataView[List[ProgressModule]]:
    return DataView(
        partial(api.list_patient_progress, patient_id),
        empty=[],
        name="progress",
    )


def resource_metrics_view(api: ResourcesApi) -> DataView[ResourceMetrics]:
    return DataView(
        api.get_resource_metrics,
        empty=ResourceMetrics(),
        name="resource metrics",
    )


def chat_summary_view(api: ChatApi) -> DataView[ChatSummary]:
    """Chat count, total unread and the most recently updated chat."""

    async def fetch() -> ChatSummary:
        result = await api.list_chats()
        return ChatSummary.from_chats(result.chats)

    return DataView(fetch, empty=ChatSummary(), name="chat summary")
