from datetime import timezone

import pytest
from pydantic import ValidationError

from carebridge.schemas.auth import AuthUser
from carebridge.schemas.chat import Chat, ChatSummary, MarkReadInput, Message, SendMessageInput
from carebridge.schemas.realtime import RealtimeEnvelope, RealtimeMessage
from carebridge.schemas.sessions import Session

from conftest import make_chat, message_row


def test_message_from_row_defaults_and_utc():
    message = Message.from_row({
        "id": 7,
        "chat_id": "c1",
        "sender_id": "u1",
        "content": None,
        "created_at": "2024-05-01T12:00:00",
    })

    assert message.id == "7"
    assert message.content == ""
    assert message.type == "text"
    assert message.created_at.tzinfo == timezone.utc
    assert message.updated_at == message.created_at


def test_view_is_camel_case():
    message = Message.from_row(message_row("m1", reply_to_id="m0"))

    view = message.to_view()

    assert view["chatId"] == "c1"
    assert view["replyToId"] == "m0"
    assert "chat_id" not in view


def test_temporary_flag():
    assert Message.from_row(message_row("temp-123-abc")).is_temporary
    assert not Message.from_row(message_row("m1")).is_temporary


def test_chat_unread_is_never_negative():
    assert make_chat("c1", unread_count=-2).unread_count == 0
    assert Chat.from_row({"id": "c1", "unread_count": 5}).unread_count == 5


@pytest.mark.parametrize("content", ["", "   ", "x" * 5001])
def test_send_input_rejects_bad_content(content):
    with pytest.raises(ValidationError):
        SendMessageInput(chat_id="c1", content=content)


def test_send_input_accepts_camel_case():
    data = SendMessageInput.model_validate({"chatId": "c1", "content": "hi", "replyToId": "m0"})
    assert data.reply_to_id == "m0"


def test_mark_read_input():
    assert MarkReadInput().mark_all is True
    assert MarkReadInput(message_ids=[]).to_payload() == {"markAll": True}
    explicit = MarkReadInput(message_ids=["m1"])
    assert explicit.to_payload() == {"messageIds": ["m1"], "markAll": False}


def test_bare_realtime_row_is_an_insert():
    envelope = RealtimeEnvelope.from_payload(message_row("m1"))
    assert envelope.type == "INSERT"
    assert envelope.record["id"] == "m1"


def test_realtime_message_conversion():
    event = RealtimeMessage.model_validate(message_row("m1", type="sticker", unknown="ignored"))

    message = event.to_message(is_read=True)

    assert message.type == "text"
    assert message.is_read is True
    assert message.updated_at == message.created_at


def test_session_maps_room_columns():
    session = Session.from_row({
        "id": "s1", "patient_id": "p1", "counselor_id": "k1", "date": "2024-05-02", "time": "10:00",
        "jitsi_room_url": "https://meet.example/abc", "jitsi_room_name": "abc",
    })
    assert session.room_url == "https://meet.example/abc"
    assert session.to_view()["roomName"] == "abc"


def test_auth_user_role_falls_back_to_metadata():
    user = AuthUser.from_row({"id": "u1", "role": "authenticated", "user_metadata": {"role": "counselor"}})
    assert user.role == "counselor"


def test_chat_summary():
    chats = [make_chat("c1", unread_count=2), make_chat("c2", unread_count=3)]
    chats[1] = chats[1].model_copy(update={"updated_at": chats[1].updated_at.replace(year=2025)})

    summary = ChatSummary.from_chats(chats)

    assert summary.chat_count == 2
    assert summary.unread_total == 5
    assert summary.latest_chat.id == "c2"
    assert ChatSummary.from_chats([]).latest_chat is None
