"""
Pydantic request / response schemas for the HTTP API.

Request models only check shape and types; the repositories own the
business rules (non-empty text, priority values, unique usernames, ...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo; they are stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    """Public view of a user; never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    created_at: datetime

    normalize_created_at = field_validator("created_at")(_as_utc)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


# ═══════════════════════════════════════════════════════════════════════════════
# Todos
# ═══════════════════════════════════════════════════════════════════════════════


class TodoIn(BaseModel):
    text: str
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    # Plain string so an unknown value reaches the repository check.
    priority: Optional[str] = None
    due_date: Optional[datetime] = None


class TodoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    completed: bool
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, value):
        return [] if value is None else value

    normalize_timestamps = field_validator("due_date", "created_at", "updated_at")(_as_utc)


class ErrorResponse(BaseModel):
    error: str
