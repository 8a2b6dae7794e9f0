"""
Pydantic schemas for wire rows and client view models.
"""

# Chat schemas
from .chat import (
    Message,
    Chat,
    ChatList,
    ChatSummary,
    MessagePage,
    SendMessageInput,
    CreateChatInput,
    ChatQueryParams,
    MessagesQueryParams,
    MarkReadInput,
)

# Realtime schemas
from .realtime import (
    RealtimeEnvelope,
    RealtimeMessage,
    RealtimeNotification,
    RealtimeSession,
    RealtimeChatUpdate,
    RealtimeProfile,
)

# Auth schemas
from .auth import (
    AuthUser,
    AuthSessionData,
    OAuthFragmentTokens,
)

__all__ = [
    # Chat schemas
    "Message",
    "Chat",
    "ChatList",
    "ChatSummary",
    "MessagePage",
    "SendMessageInput",
    "CreateChatInput",
    "ChatQueryParams",
    "MessagesQueryParams",
    "MarkReadInput",
    # Realtime schemas
    "RealtimeEnvelope",
    "RealtimeMessage",
    "RealtimeNotification",
    "RealtimeSession",
    "RealtimeChatUpdate",
    "RealtimeProfile",
    # Auth schemas
    "AuthUser",
    "AuthSessionData",
    "OAuthFragmentTokens",
]
