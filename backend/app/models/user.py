"""
User account models for local authentication.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """Create a user account."""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    password_hash: str = Field(..., max_length=255)


class UserAccount(BaseModel):
    """User account stored in the database."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    display_name: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: datetime
    updated_at: datetime
