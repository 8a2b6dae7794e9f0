"""
Chat API client.
"""
import logging
from typing import Optional

from carebridge.schemas.chat import (
    Chat, ChatList, ChatQueryParams, CreateChatInput, MarkReadInput,
    Message, MessagePage, MessagesQueryParams, SendMessageInput,
)
from carebridge.services.api_client import ApiClient, extract, parse_row, parse_rows

logger = logging.getLogger(__name__)


def _total(data) -> int:
    if isinstance(data, dict):
        return int(data.get("total") or 0)
    return 0


class ChatApi:
    """Typed wrapper over ``/api/chat``."""

    base_path = "/api/chat"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list_chats(self, params: Optional[ChatQueryParams] = None) -> ChatList:
        data = await self.client.get(self.base_path, params=params.to_payload() if params else None)
        return ChatList(
            chats=parse_rows(extract(data, "chats"), Chat.from_row),
            total=_total(data),
        )

    async def get_chat(self, chat_id: str) -> Chat:
        data = await self.client.get(f"{self.base_path}/{chat_id}")
        return parse_row(extract(data, "chat"), Chat.from_row)

    async def create_chat(self, data: CreateChatInput) -> Chat:
        result = await self.client.post(self.base_path, json_body=data.to_payload())
        chat = parse_row(extract(result, "chat"), Chat.from_row)
        logger.info(f"Chat {chat.id} created with participant {data.participant_id}")
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        await self.client.delete(f"{self.base_path}/{chat_id}")

    async def get_messages(self, chat_id: str, params: Optional[MessagesQueryParams] = None) -> MessagePage:
        data = await self.client.get(
            f"{self.base_path}/{chat_id}/messages",
            params=params.to_payload() if params else None,
        )
        return MessagePage(
            messages=parse_rows(extract(data, "messages"), Message.from_row),
            total=_total(data),
        )

    async def send_message(self, data: SendMessageInput) -> Message:
        result = await self.client.post(
            f"{self.base_path}/{data.chat_id}/messages",
            json_body=data.to_payload(),
        )
        return parse_row(extract(result, "message"), Message.from_row)

    async def mark_messages_read(self, chat_id: str, data: Optional[MarkReadInput] = None) -> None:
        data = data or MarkReadInput()
        await self.client.post(
            f"{self.base_path}/{chat_id}/messages/read",
            json_body=data.to_payload(),
        )

    async def react_to_message(self, message_id: str, emoji: str) -> Message:
        result = await self.client.post(
            f"{self.base_path}/messages/{message_id}/reactions",
            json_body={"emoji": emoji},
        )
        return parse_row(extract(result, "message"), Message.from_row)

    async def edit_message(self, message_id: str, content: str) -> Message:
        result = await self.client.put(
            f"{self.base_path}/messages/{message_id}",
            json_body={"content": content},
        )
        return parse_row(extract(result, "message"), Message.from_row)

    async def delete_message(self, message_id: str) -> None:
        await self.client.delete(f"{self.base_path}/messages/{message_id}")
