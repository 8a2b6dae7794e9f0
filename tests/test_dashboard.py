from carebridge.core.exceptions import ApiError
from carebridge.schemas.chat import ChatList
from carebridge.schemas.sessions import SessionStats
from carebridge.services.dashboard import (
    DataView, chat_summary_view, progress_view, resource_metrics_view, session_stats_view,
)

from conftest import make_chat


class FakeSessionsApi:
    def __init__(self):
        self.calls = []

    async def get_patient_session_stats(self, user_id=None):
        self.calls.append(("patient", user_id))
        return SessionStats(total_sessions=2)

    async def get_counselor_session_stats(self, user_id=None):
        self.calls.append(("counselor", user_id))
        return SessionStats(total_sessions=9)


class FailingApi:
    async def list_patient_progress(self, patient_id=None):
        raise ApiError("Progress unavailable", status_code=503)

    async def get_resource_metrics(self):
        raise ApiError("", status_code=500)


class FakeChatApi:
    async def list_chats(self, params=None):
        return ChatList(chats=[make_chat("c1", unread_count=1), make_chat("c2", unread_count=4)], total=2)


async def test_session_stats_view_routes_by_role():
    api = FakeSessionsApi()

    view = session_stats_view(api, "counselor", "k1")
    stats = await view.refresh()

    assert stats.total_sessions == 9
    assert api.calls == [("counselor", "k1")]
    assert view.loading is False


async def test_disabled_view_does_not_fetch():
    api = FakeSessionsApi()

    view = session_stats_view(api, "admin")
    result = await view.refresh()

    assert result is None
    assert api.calls == []


async def test_failure_sets_error_and_keeps_empty_data():
    view = progress_view(FailingApi(), "p1")

    result = await view.refresh()

    assert result == []
    assert view.error == "Progress unavailable"


async def test_failure_without_message_uses_fallback():
    view = resource_metrics_view(FailingApi())

    await view.refresh()

    assert view.error == "Failed to load resource metrics"
    assert view.data.total == 0


async def test_chat_summary_view():
    view = chat_summary_view(FakeChatApi())

    summary = await view.refresh()

    assert summary.chat_count == 2
    assert summary.unread_total == 5


async def test_toggling_enabled_resets_data():
    async def fetch():
        return [1, 2, 3]

    view = DataView(fetch, empty=[], name="numbers")
    assert await view.refresh() == [1, 2, 3]

    view.enabled = False
    assert await view.refresh() == []
