"""
Rate limit snapshot models.
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import RateLimitType


class RateLimitInfo(BaseModel):
    """Per-user quota counters for the minute and day windows."""

    minute_limit: int
    minute_remaining: int
    minute_reset: int = Field(..., description="Epoch seconds when the minute window resets")
    daily_limit: int
    daily_remaining: int
    daily_reset: int = Field(..., description="Epoch seconds when the daily window resets")

    # Set only when a message was rejected
    limit_type: Optional[RateLimitType] = None
    current: Optional[int] = None
    retry_after: Optional[int] = None

    def to_headers(self) -> dict[str, str]:
        """Render the counters as X-RateLimit-* response headers."""
        return {
            "X-RateLimit-Limit-Minute": str(self.minute_limit),
            "X-RateLimit-Remaining-Minute": str(self.minute_remaining),
            "X-RateLimit-Reset-Minute": str(self.minute_reset),
            "X-RateLimit-Limit-Daily": str(self.daily_limit),
            "X-RateLimit-Remaining-Daily": str(self.daily_remaining),
            "X-RateLimit-Reset-Daily": str(self.daily_reset),
        }
