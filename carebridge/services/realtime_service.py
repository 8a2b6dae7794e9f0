"""
Realtime subscription adapter.

Wraps a pub/sub transport and exposes typed subscriptions for messages,
notifications, sessions, chat updates and profiles. Each subscribe call
returns a ``Subscription`` handle that owns the underlying channel
registration; cancelling it releases the registration. Without an
``on_event`` callback the handle doubles as an async stream of events.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, Optional, Set, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from typing_extensions import Protocol

from carebridge.core.config import settings
from carebridge.core.exceptions import RealtimeError
from carebridge.db.redis_client import redis_pubsub
from carebridge.schemas.realtime import (
    RealtimeChatUpdate, RealtimeEnvelope, RealtimeMessage,
    RealtimeNotification, RealtimeProfile, RealtimeSession,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseModel)

TransportCallback = Callable[[str, Dict[str, Any]], Union[None, Awaitable[None]]]
EventCallback = Callable[[Any], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], None]


class RealtimeTransport(Protocol):
    """What the adapter needs from a pub/sub backend (see ``RedisPubSub``)."""

    async def subscribe(self, channel: str, callback: TransportCallback) -> None: ...

    async def unsubscribe(self, channel: str, callback: Optional[TransportCallback] = None) -> None: ...


_STREAM_END = object()


class Subscription(Generic[E]):
    """Disposable handle for one channel registration."""

    def __init__(
        self,
        transport: RealtimeTransport,
        channel: str,
        event_type: Type[E],
        on_event: Optional[EventCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        accept: Optional[Callable[[E, RealtimeEnvelope], bool]] = None,
        with_envelope: bool = False,
    ):
        self.transport = transport
        self.channel = channel
        self.event_type = event_type
        self.on_event = on_event
        self.on_error = on_error
        self.accept = accept
        self.with_envelope = with_envelope
        self.active = False
        self._queue: Optional["asyncio.Queue"] = None if on_event else asyncio.Queue()

    async def _open(self) -> None:
        await self.transport.subscribe(self.channel, self._handle)
        self.active = True

    def _report(self, error: Exception) -> None:
        logger.error(f"Realtime error on {self.channel}: {error}")
        if self.on_error:
            try:
                self.on_error(error)
            except Exception as e:
                logger.error(f"Error in realtime error handler for {self.channel}: {e}", exc_info=True)

    async def _handle(self, channel: str, payload: Dict[str, Any]) -> None:
        if not self.active:
            return
        try:
            envelope = RealtimeEnvelope.from_payload(payload)
            event = self.event_type.model_validate(envelope.record)
        except (ValidationError, TypeError) as e:
            self._report(RealtimeError(f"Malformed realtime payload on {channel}: {e}"))
            return

        if self.accept and not self.accept(event, envelope):
            return

        if self._queue is not None:
            self._queue.put_nowait((event, envelope))
            return

        if self.with_envelope:
            result = self.on_event(event, envelope)
        else:
            result = self.on_event(event)
        if asyncio.iscoroutine(result):
            await result

    async def cancel(self) -> None:
        """Release the channel registration. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        try:
            await self.transport.unsubscribe(self.channel, self._handle)
        finally:
            if self._queue is not None:
                self._queue.put_nowait(_STREAM_END)
        logger.debug(f"Subscription to {self.channel} cancelled")

    def __aiter__(self):
        if self._queue is None:
            raise RealtimeError("Subscription was created with a callback and cannot be iterated")
        return self

    async def __anext__(self) -> E:
        if self._queue is None:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _STREAM_END:
            raise StopAsyncIteration
        event, _envelope = item
        return event


class RealtimeClient:
    """Typed subscriptions over a realtime transport."""

    def __init__(self, transport: RealtimeTransport, channel_prefix: Optional[str] = None):
        self.transport = transport
        self.channel_prefix = channel_prefix or settings.realtime_channel_prefix
        self._subscriptions: Set[Subscription] = set()

    def channel(self, kind: str, identifier: Optional[str] = None) -> str:
        if identifier is None:
            return f"{self.channel_prefix}:{kind}"
        return f"{self.channel_prefix}:{kind}:{identifier}"

    async def _subscribe(
        self,
        channel: str,
        event_type: Type[E],
        on_event: Optional[EventCallback],
        on_error: Optional[ErrorCallback],
        accept: Optional[Callable[[E, RealtimeEnvelope], bool]] = None,
        with_envelope: bool = False,
    ) -> Subscription[E]:
        subscription = Subscription(
            self.transport, channel, event_type, on_event, on_error, accept, with_envelope
        )
        try:
            await subscription._open()
        except Exception as e:
            error = RealtimeError(f"Failed to subscribe to {channel}: {e}")
            if on_error:
                on_error(error)
            raise error from e
        self._subscriptions.add(subscription)
        return subscription

    async def subscribe_to_messages(
        self,
        chat_id: str,
        on_message: Optional[Callable[[RealtimeMessage], Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription[RealtimeMessage]:
        """Message inserts/updates for one chat."""
        return await self._subscribe(
            self.channel("messages", chat_id),
            RealtimeMessage,
            on_message,
            on_error,
            accept=lambda event, envelope: event.chat_id == chat_id and envelope.type != "DELETE",
        )

    async def subscribe_to_notifications(
        self,
        user_id: str,
        on_notification: Optional[Callable[[RealtimeNotification], Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription[RealtimeNotification]:
        return await self._subscribe(
            self.channel("notifications", user_id),
            RealtimeNotification,
            on_notification,
            on_error,
            accept=lambda event, envelope: event.user_id == user_id,
        )

    async def subscribe_to_session(
        self,
        session_id: str,
        on_update: Optional[Callable[[RealtimeSession], Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription[RealtimeSession]:
        return await self._subscribe(
            self.channel("sessions", session_id),
            RealtimeSession,
            on_update,
            on_error,
        )

    async def subscribe_to_chat(
        self,
        chat_id: str,
        on_update: Optional[Callable[[RealtimeChatUpdate], Any]] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription[RealtimeChatUpdate]:
        return await self._subscribe(
            self.channel("chats", chat_id),
            RealtimeChatUpdate,
            on_update,
            on_error,
        )

    async def subscribe_to_profiles(
        self,
        on_update: Optional[Callable[[RealtimeProfile, Dict[str, Any]], Any]] = None,
        on_error: Optional[ErrorCallback] = None,
        role: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> Subscription[RealtimeProfile]:
        """
        Profile changes, filtered client-side by role and/or ids.

        The callback receives the profile and a context dict with the change
        ``event_type`` and the ``old_record``.
        """
        wanted_ids = set(ids) if ids is not None else None

        def accept(profile: RealtimeProfile, envelope: RealtimeEnvelope) -> bool:
            if role and profile.role != role:
                return False
            if wanted_ids is not None and profile.id not in wanted_ids:
                return False
            return True

        handler = None
        if on_update is not None:
            def handler(profile: RealtimeProfile, envelope: RealtimeEnvelope):
                context = {"event_type": envelope.type, "old_record": envelope.old_record}
                return on_update(profile, context)

        return await self._subscribe(
            self.channel("profiles"),
            RealtimeProfile,
            handler,
            on_error,
            accept=accept,
            with_envelope=handler is not None,
        )

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def release(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        await subscription.cancel()

    async def unsubscribe_all(self) -> None:
        subscriptions = list(self._subscriptions)
        self._subscriptions.clear()
        for subscription in subscriptions:
            await subscription.cancel()
        logger.info(f"Released {len(subscriptions)} realtime subscriptions")


# Global realtime client on the Redis transport
realtime_client = RealtimeClient(redis_pubsub)


def get_realtime_client() -> RealtimeClient:
    """Dependency: the process-wide realtime client."""
    return realtime_client
