"""
Pure helpers for merging chat message lists.

Every function takes the current list and returns a new one; nothing here
mutates its input or performs I/O, so ``ChatSession`` can apply them as
functional updates against whatever state is current when they run.
"""
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from carebridge.core.config import settings
from carebridge.schemas.base import utcnow
from carebridge.schemas.chat import Message


def make_temp_id(prefix: Optional[str] = None) -> str:
    """Temporary id for an unconfirmed send, e.g. ``temp-1718000000000-1a2b3c4d``."""
    prefix = settings.temp_id_prefix if prefix is None else prefix
    return f"{prefix}{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def is_temp_id(message_id: str, prefix: Optional[str] = None) -> bool:
    prefix = settings.temp_id_prefix if prefix is None else prefix
    return message_id.startswith(prefix)


def dedupe_and_sort(messages: List[Message]) -> List[Message]:
    """Keep the last entry per id, then order ascending by ``created_at``.

    The sort is stable: entries with equal timestamps keep their relative order.
    """
    by_id: Dict[str, Message] = {}
    for message in messages:
        by_id[message.id] = message
    return sorted(by_id.values(), key=lambda m: m.created_at)


def find_optimistic_match(
    messages: List[Message],
    incoming: Message,
    window_seconds: Optional[float] = None,
) -> Optional[int]:
    """
    Index of the temporary entry that ``incoming`` confirms, if any.

    An incoming message carrying ``client_message_id`` only ever matches the
    temporary entry it was sent as. Without one, the first temporary entry
    from the same sender with the same content and a ``created_at`` within
    the window matches.
    """
    if incoming.client_message_id:
        for index, message in enumerate(messages):
            if not is_temp_id(message.id):
                continue
            if incoming.client_message_id in (message.id, message.client_message_id):
                return index
        return None

    window = settings.optimistic_match_window_seconds if window_seconds is None else window_seconds
    for index, message in enumerate(messages):
        if not is_temp_id(message.id):
            continue
        if message.sender_id != incoming.sender_id or message.content != incoming.content:
            continue
        if abs((message.created_at - incoming.created_at).total_seconds()) < window:
            return index
    return None


def apply_realtime_event(
    messages: List[Message],
    incoming: Message,
    window_seconds: Optional[float] = None,
) -> List[Message]:
    """Merge one pushed message into the list.

    1. An entry with the same id is updated in place.
    2. Otherwise a matching temporary entry is replaced by the incoming one.
    3. Otherwise the incoming message is appended.
    The result is deduplicated by id and sorted by ``created_at``.
    """
    result = list(messages)

    for index, existing in enumerate(result):
        if existing.id == incoming.id:
            touched = [t for t in (incoming.updated_at, incoming.edited_at, incoming.deleted_at) if t is not None]
            result[index] = existing.model_copy(update={
                "updated_at": max([existing.updated_at] + touched),
                "content": incoming.content,
                "reactions": incoming.reactions if incoming.reactions is not None else existing.reactions,
                "reply_to_id": incoming.reply_to_id or existing.reply_to_id,
                "edited_at": incoming.edited_at or existing.edited_at,
                "deleted_at": incoming.deleted_at or existing.deleted_at,
                "is_read": incoming.is_read,
            })
            return dedupe_and_sort(result)

    match = find_optimistic_match(result, incoming, window_seconds)
    if match is not None:
        result[match] = incoming
    else:
        result.append(incoming)
    return dedupe_and_sort(result)


def merge_page(messages: List[Message], page: List[Message]) -> List[Message]:
    """Merge a fetched history page into the current list; fetched rows win.

    Temporary entries whose correlation id shows up in the page are dropped.
    """
    confirmed = {m.client_message_id for m in page if m.client_message_id}
    kept = [
        m for m in messages
        if not (is_temp_id(m.id) and (m.id in confirmed or m.client_message_id in confirmed))
    ]
    return dedupe_and_sort(kept + list(page))


def replace_message(messages: List[Message], updated: Message) -> List[Message]:
    """Splice ``updated`` in by id, keeping its position. Unknown ids are ignored."""
    return [updated if m.id == updated.id else m for m in messages]


def remove_message(messages: List[Message], message_id: str) -> List[Message]:
    return [m for m in messages if m.id != message_id]


def soft_delete(
    messages: List[Message],
    message_id: str,
    placeholder: Optional[str] = None,
    deleted_at: Optional[datetime] = None,
) -> List[Message]:
    """Blank a message's content and stamp ``deleted_at`` without moving it."""
    placeholder = settings.deleted_message_placeholder if placeholder is None else placeholder
    stamp = deleted_at or utcnow()
    return [
        m.model_copy(update={"content": placeholder, "deleted_at": stamp}) if m.id == message_id else m
        for m in messages
    ]


def confirm_sent(messages: List[Message], temp_id: str, confirmed: Message) -> List[Message]:
    """Drop the temporary entry and add the confirmed one unless it is already present."""
    result = remove_message(messages, temp_id)
    if any(m.id == confirmed.id for m in result):
        return result
    result.append(confirmed)
    return dedupe_and_sort(result)


def mark_chat_read(messages: List[Message], chat_id: str) -> List[Message]:
    return [
        m.model_copy(update={"is_read": True}) if m.chat_id == chat_id and not m.is_read else m
        for m in messages
    ]
