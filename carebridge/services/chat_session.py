"""
Chat session: reconciles history pages, optimistic sends and realtime pushes
into one deduplicated, time-ordered message list for the active conversation,
and keeps the conversation summaries (last message, unread count) in step.

All state lives on the instance. Every change to ``messages`` or ``chats``
goes through ``_update_messages`` / ``_update_chats``, which apply a function
to the state as it is when the update runs. Updates are synchronous, so two
coroutines resuming back to back never overwrite each other's changes.
"""
import asyncio
import logging
from typing import Callable, Coroutine, List, Optional, Set

from carebridge.core.config import settings
from carebridge.core.exceptions import CarebridgeError, RealtimeError
from carebridge.schemas.base import utcnow
from carebridge.schemas.chat import (
    Chat, ChatQueryParams, CreateChatInput, MarkReadInput,
    Message, MessagesQueryParams, SendMessageInput,
)
from carebridge.schemas.realtime import RealtimeMessage
from carebridge.services.auth_service import AuthSession
from carebridge.services.chat_api import ChatApi
from carebridge.services.realtime_service import RealtimeClient, Subscription
from carebridge.utils.message_utils import (
    apply_realtime_event, confirm_sent, dedupe_and_sort, make_temp_id,
    mark_chat_read, merge_page, remove_message, replace_message, soft_delete,
)

logger = logging.getLogger(__name__)

MessagesUpdate = Callable[[List[Message]], List[Message]]
ChatsUpdate = Callable[[List[Chat]], List[Chat]]


class ChatSession:
    """Client-side state for one user's chats and the conversation they have open."""

    def __init__(
        self,
        chat_api: ChatApi,
        realtime: RealtimeClient,
        auth_session: Optional[AuthSession] = None,
        current_user_id: Optional[str] = None,
        match_window_seconds: Optional[float] = None,
    ):
        self.chat_api = chat_api
        self.realtime = realtime
        self.auth_session = auth_session
        self.current_user_id = current_user_id
        self.match_window_seconds = (
            settings.optimistic_match_window_seconds if match_window_seconds is None else match_window_seconds
        )

        self.chats: List[Chat] = []
        self.messages: List[Message] = []
        self.current_chat_id: Optional[str] = None
        self.loading = False
        self.messages_loading = False
        self.error: Optional[str] = None
        self.total = 0
        self.realtime_connected = False

        self._loaded_chat_ids: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._subscription: Optional[Subscription] = None
        self._background_tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "ChatSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def current_chat(self) -> Optional[Chat]:
        if self.current_chat_id is None:
            return None
        return self._find_chat(self.current_chat_id)

    def _find_chat(self, chat_id: str) -> Optional[Chat]:
        for chat in self.chats:
            if chat.id == chat_id:
                return chat
        return None

    # State updates

    def _update_messages(self, fn: MessagesUpdate) -> None:
        self.messages = fn(self.messages)

    def _update_chats(self, fn: ChatsUpdate) -> None:
        self.chats = fn(self.chats)

    def _update_chat(self, chat_id: str, fn: Callable[[Chat], Chat]) -> None:
        self._update_chats(lambda chats: [fn(c) if c.id == chat_id else c for c in chats])

    def _normalize_summary(self, chat: Chat) -> Chat:
        own_last = (
            chat.last_message is not None
            and self.current_user_id is not None
            and chat.last_message.sender_id == self.current_user_id
        )
        if chat.unread_count and (chat.id == self.current_chat_id or own_last):
            return chat.model_copy(update={"unread_count": 0})
        return chat

    # Lifecycle

    async def start(self) -> None:
        """Resolve the current user if needed and load the chat list."""
        if self.current_user_id is None and self.auth_session is not None:
            try:
                self.current_user_id = await self.auth_session.get_user_id()
            except CarebridgeError as e:
                self.error = e.message
                logger.error(f"Failed to resolve current user: {e.message}")
        await self.refresh_chats(show_loading=True)

    async def close(self) -> None:
        """Leave the active chat and cancel background work."""
        self.current_chat_id = None
        await self._release_subscription()
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background_tasks.clear()

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background chat task failed: {exc}", exc_info=exc)

    async def _release_subscription(self) -> None:
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        self.realtime_connected = False
        try:
            await self.realtime.release(subscription)
        except RealtimeError as e:
            logger.warning(f"Failed to release realtime subscription: {e.message}")

    async def _subscribe_to_chat(self, chat_id: str) -> None:
        await self._release_subscription()
        try:
            self._subscription = await self.realtime.subscribe_to_messages(
                chat_id,
                on_message=self.handle_realtime_message,
                on_error=self._on_realtime_error,
            )
            self.realtime_connected = True
        except RealtimeError as e:
            self.realtime_connected = False
            logger.error(f"Realtime subscription for chat {chat_id} failed: {e.message}")

    def _on_realtime_error(self, error: Exception) -> None:
        logger.warning(f"Realtime error in chat {self.current_chat_id}: {error}")

    # Chat list

    async def refresh_chats(self, show_loading: bool = False, params: Optional[ChatQueryParams] = None) -> None:
        """Reload the chat list. Failures set ``error`` and are logged, never raised."""
        if show_loading:
            self.loading = True
        try:
            result = await self.chat_api.list_chats(params)
            self._update_chats(lambda _: [self._normalize_summary(c) for c in result.chats])
            self.total = result.total
            self.error = None
        except CarebridgeError as e:
            self.error = e.message
            logger.error(f"Failed to fetch chats: {e.message}")
        finally:
            if show_loading:
                self.loading = False

    async def create_chat(self, data: CreateChatInput) -> Chat:
        chat = await self.chat_api.create_chat(data)
        await self.refresh_chats()
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        await self.chat_api.delete_chat(chat_id)
        self._update_chats(lambda chats: [c for c in chats if c.id != chat_id])
        self._loaded_chat_ids.discard(chat_id)
        if self.current_chat_id == chat_id:
            self.current_chat_id = None
            self._update_messages(lambda _: [])
            await self._release_subscription()
        await self.refresh_chats()

    # Conversation

    async def select_chat(self, chat_id: str) -> None:
        """Open a conversation: move the subscription, load history, mark read."""
        chat = self._find_chat(chat_id)
        if chat is None:
            logger.warning(f"Ignoring selection of unknown chat {chat_id}")
            return

        previous = self.current_chat_id
        if previous != chat_id:
            self._update_messages(lambda _: [])
            if previous is not None:
                self._loaded_chat_ids.discard(previous)
            self._loaded_chat_ids.discard(chat_id)
            self.current_chat_id = chat_id
            await self._subscribe_to_chat(chat_id)

        await self.load_messages(chat_id)

        chat = self._find_chat(chat_id)
        if chat is not None and chat.unread_count > 0:
            await self.mark_messages_read(chat_id)

    async def load_messages(
        self,
        chat_id: str,
        params: Optional[MessagesQueryParams] = None,
        force_reload: bool = False,
    ) -> None:
        """
        Fetch a page of history.

        Does nothing when the chat is active and already loaded, unless
        ``force_reload`` is set, or when a load for the chat is in flight.
        A page for the active chat is merged into the list; any other page
        replaces it. A page for a chat that is no longer the active one when
        it arrives (another chat opened, the chat deleted or the session
        closed) is dropped.
        """
        was_active = self.current_chat_id == chat_id
        if was_active and chat_id in self._loaded_chat_ids and not force_reload:
            return
        if chat_id in self._in_flight:
            logger.debug(f"Load for chat {chat_id} already in flight")
            return

        self._in_flight.add(chat_id)
        self.messages_loading = True
        try:
            page = await self.chat_api.get_messages(
                chat_id, params or MessagesQueryParams(limit=settings.messages_page_size)
            )
        except CarebridgeError as e:
            self.error = e.message
            logger.error(f"Failed to load messages for chat {chat_id}: {e.message}")
            return
        finally:
            self._in_flight.discard(chat_id)
            self.messages_loading = bool(self._in_flight)

        if self.current_chat_id != chat_id:
            logger.debug(f"Discarding stale history for chat {chat_id}")
            return

        if was_active:
            self._update_messages(lambda prev: merge_page(prev, page.messages))
        else:
            self._update_messages(lambda _: dedupe_and_sort(page.messages))
        self._loaded_chat_ids.add(chat_id)

    async def send_message(self, data: SendMessageInput) -> Message:
        """
        Send a message with an optimistic local entry.

        The temporary entry is visible before the first await. On failure it
        is removed, the summary preview restored, and the error re-raised.
        """
        temp_id = make_temp_id()
        correlation_id = data.client_message_id or temp_id
        data = data.model_copy(update={"client_message_id": correlation_id})

        now = utcnow()
        optimistic = Message(
            id=temp_id,
            chat_id=data.chat_id,
            sender_id=self.current_user_id or "",
            content=data.content,
            type=data.type,
            file_url=data.file_url,
            is_read=False,
            created_at=now,
            updated_at=now,
            reply_to_id=data.reply_to_id,
            client_message_id=correlation_id,
        )

        if self.current_chat_id == data.chat_id:
            self._update_messages(lambda prev: dedupe_and_sort(prev + [optimistic]))

        chat = self._find_chat(data.chat_id)
        previous_last = chat.last_message if chat else None
        previous_updated_at = chat.updated_at if chat else None
        self._update_chat(
            data.chat_id,
            lambda c: c.model_copy(update={"last_message": optimistic, "unread_count": 0, "updated_at": now}),
        )

        try:
            confirmed = await self.chat_api.send_message(data)
        except CarebridgeError as e:
            self._update_messages(lambda prev: remove_message(prev, temp_id))

            def restore(c: Chat) -> Chat:
                if c.last_message is None or c.last_message.id != temp_id:
                    return c
                return c.model_copy(update={
                    "last_message": previous_last,
                    "updated_at": previous_updated_at or c.updated_at,
                })

            self._update_chat(data.chat_id, restore)
            logger.error(f"Failed to send message to chat {data.chat_id}: {e.message}")
            raise

        if self.current_chat_id == confirmed.chat_id:
            self._update_messages(lambda prev: confirm_sent(prev, temp_id, confirmed))
        else:
            self._update_messages(lambda prev: remove_message(prev, temp_id))

        def promote(c: Chat) -> Chat:
            last = c.last_message
            if last is not None and last.id not in (temp_id, confirmed.id):
                return c
            return c.model_copy(update={"last_message": confirmed, "unread_count": 0})

        self._update_chat(confirmed.chat_id, promote)
        return confirmed

    async def handle_realtime_message(self, event: RealtimeMessage) -> None:
        """Merge one pushed message into the list and its conversation summary."""
        own = self.current_user_id is not None and event.sender_id == self.current_user_id
        active = event.chat_id == self.current_chat_id

        incoming = event.to_message(is_read=True if active and not own else None)
        if active:
            self._update_messages(
                lambda prev: apply_realtime_event(prev, incoming, self.match_window_seconds)
            )

        def summarize(c: Chat) -> Chat:
            last = c.last_message
            same_as_last = last is not None and last.id == incoming.id
            if own or active:
                unread = 0
            elif same_as_last:
                unread = c.unread_count
            else:
                unread = c.unread_count + 1
            update = {"unread_count": unread}
            if last is None or same_as_last or incoming.created_at >= last.created_at:
                update["last_message"] = incoming
                update["updated_at"] = max(c.updated_at, incoming.created_at)
            return self._normalize_summary(c.model_copy(update=update))

        self._update_chat(event.chat_id, summarize)

        if active and not own:
            self._spawn(self.mark_messages_read(event.chat_id, MarkReadInput(message_ids=[event.id])))

    async def mark_messages_read(self, chat_id: str, data: Optional[MarkReadInput] = None) -> None:
        """Mark messages read on the server, then locally. Failures are logged only."""
        try:
            await self.chat_api.mark_messages_read(chat_id, data)
        except CarebridgeError as e:
            logger.error(f"Failed to mark messages read in chat {chat_id}: {e.message}")
            return

        self._update_chat(chat_id, lambda c: c.model_copy(update={"unread_count": 0}))
        self._update_messages(lambda prev: mark_chat_read(prev, chat_id))

    # Message actions

    async def react_to_message(self, message_id: str, emoji: str) -> Message:
        updated = await self.chat_api.react_to_message(message_id, emoji)
        self._update_messages(lambda prev: replace_message(prev, updated))
        return updated

    async def edit_message(self, message_id: str, content: str) -> Message:
        updated = await self.chat_api.edit_message(message_id, content)
        self._update_messages(lambda prev: replace_message(prev, updated))
        await self.refresh_chats()
        return updated

    async def delete_message(self, message_id: str) -> None:
        await self.chat_api.delete_message(message_id)
        deleted_at = utcnow()
        self._update_messages(lambda prev: soft_delete(prev, message_id, deleted_at=deleted_at))
        await self.refresh_chats()
