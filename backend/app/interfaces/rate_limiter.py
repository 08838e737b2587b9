"""
Chat rate limiter interface.

Counters are owned by the limiter; callers only consume its verdict.
"""

from abc import ABC, abstractmethod

from app.models.rate_limit import RateLimitInfo


class IChatRateLimiter(ABC):
    """Abstract interface for per-user message quotas."""

    @abstractmethod
    async def check(self, user_id: str) -> RateLimitInfo:
        """
        Count one message against the user's quotas.

        Returns:
            Counters after this message was counted

        Raises:
            RateLimitedError: If the minute or daily quota is exhausted
        """
        pass

    @abstractmethod
    async def usage(self, user_id: str) -> RateLimitInfo:
        """Read the user's counters without counting a message."""
        pass
