"""
Shared fixtures: an in-memory realtime transport and a scriptable chat API.
"""
import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from carebridge.core.exceptions import ApiError
from carebridge.schemas.chat import Chat, ChatList, Message, MessagePage
from carebridge.services.realtime_service import RealtimeClient

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_message(
    id: str,
    chat_id: str = "c1",
    sender_id: str = "u2",
    content: str = "hello",
    offset: float = 0,
    **kwargs
) -> Message:
    created_at = kwargs.pop("created_at", BASE_TIME + timedelta(seconds=offset))
    return Message(
        id=id,
        chat_id=chat_id,
        sender_id=sender_id,
        content=content,
        created_at=created_at,
        updated_at=created_at,
        **kwargs
    )


def make_chat(id: str, unread_count: int = 0, last_message: Optional[Message] = None) -> Chat:
    return Chat(
        id=id,
        participants=["u1", "u2"],
        last_message=last_message,
        unread_count=unread_count,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


def message_row(id: str, chat_id: str = "c1", sender_id: str = "u2", content: str = "hello", **extra) -> Dict:
    row = {
        "id": id,
        "chat_id": chat_id,
        "sender_id": sender_id,
        "content": content,
        "type": "text",
        "is_read": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    row.update(extra)
    return row


class FakeTransport:
    """In-memory stand-in for the Redis pub/sub transport."""

    def __init__(self):
        self.callbacks = defaultdict(list)
        self.fail_subscribe = False

    async def subscribe(self, channel, callback):
        if self.fail_subscribe:
            raise ConnectionError("transport down")
        self.callbacks[channel].append(callback)

    async def unsubscribe(self, channel, callback=None):
        if callback is None:
            self.callbacks.pop(channel, None)
        elif callback in self.callbacks.get(channel, []):
            self.callbacks[channel].remove(callback)

    def subscriber_count(self, channel) -> int:
        return len(self.callbacks.get(channel, []))

    async def publish(self, channel, payload):
        for callback in list(self.callbacks.get(channel, [])):
            result = callback(channel, payload)
            if asyncio.iscoroutine(result):
                await result


class FakeChatApi:
    """Scriptable ``ChatApi`` double; gates let tests pause a call mid-flight."""

    def __init__(self):
        self.chats: List[Chat] = []
        self.pages: Dict[str, List[Message]] = {}
        self.message_gates: Dict[str, asyncio.Event] = {}
        self.send_gate: Optional[asyncio.Event] = None
        self.send_error: Optional[Exception] = None
        self.mark_read_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.next_message: Optional[Message] = None

        self.get_messages_calls: List[str] = []
        self.sent = []
        self.mark_read_calls = []
        self.deleted_messages: List[str] = []
        self.deleted_chats: List[str] = []
        self.list_calls = 0
        self._counter = 0

    async def list_chats(self, params=None):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return ChatList(chats=list(self.chats), total=len(self.chats))

    async def create_chat(self, data):
        chat = make_chat(f"c-{data.participant_id}")
        self.chats.append(chat)
        return chat

    async def delete_chat(self, chat_id):
        self.deleted_chats.append(chat_id)
        self.chats = [c for c in self.chats if c.id != chat_id]

    async def get_messages(self, chat_id, params=None):
        self.get_messages_calls.append(chat_id)
        gate = self.message_gates.get(chat_id)
        if gate is not None:
            await gate.wait()
        messages = list(self.pages.get(chat_id, []))
        return MessagePage(messages=messages, total=len(messages))

    async def send_message(self, data):
        self.sent.append(data)
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error:
            raise self.send_error
        if self.next_message is not None:
            return self.next_message
        self._counter += 1
        return make_message(
            f"m{self._counter}",
            chat_id=data.chat_id,
            sender_id="u1",
            content=data.content,
            created_at=datetime.now(timezone.utc),
            client_message_id=data.client_message_id,
        )

    async def mark_messages_read(self, chat_id, data=None):
        self.mark_read_calls.append((chat_id, data))
        if self.mark_read_error:
            raise self.mark_read_error

    async def react_to_message(self, message_id, emoji):
        return make_message(message_id, reactions={emoji: ["u1"]})

    async def edit_message(self, message_id, content):
        return make_message(message_id, content=content, edited_at=BASE_TIME + timedelta(minutes=5))

    async def delete_message(self, message_id):
        self.deleted_messages.append(message_id)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def realtime(transport):
    return RealtimeClient(transport, channel_prefix="realtime")


@pytest.fixture
def chat_api():
    return FakeChatApi()


@pytest.fixture
def api_error():
    return ApiError("Something went wrong", status_code=500)
