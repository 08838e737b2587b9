"""
Enum definitions for the application.
"""

from enum import Enum


class MessageRole(str, Enum):
    """Role of a chat message participant."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class RateLimitType(str, Enum):
    """Which quota window rejected a message."""

    PER_MINUTE = "per_minute"
    DAILY = "daily"
