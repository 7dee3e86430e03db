"""Domain models for the vizassist storage layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class User:
    id: int
    username: str
    password: str


@dataclass
class Conversation:
    id: int
    user_id: int
    title: str = "New Conversation"
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Message:
    id: int
    conversation_id: int
    role: str  # 'user' or 'assistant'
    content: str
    context: dict[str, Any] | None = None  # dashboard context sent with the message
    created_at: datetime | None = None


@dataclass
class Document:
    """A retrievable snippet. ``embedding`` is None when embedding failed."""

    id: int
    title: str
    content: str
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
