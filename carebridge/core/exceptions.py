"""
Exception types shared by the API clients, realtime adapter and chat session.
"""
from typing import Any, Optional


class CarebridgeError(Exception):
    """Base class for all carebridge errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(CarebridgeError):
    """A backend call failed. The message is safe to show to the user."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"


class ConfigurationError(CarebridgeError):
    """Backend credentials are missing."""


class RealtimeError(CarebridgeError):
    """Realtime transport failure or malformed realtime payload."""
