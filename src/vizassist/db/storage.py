"""Storage interface and the in-memory implementation.

One interface for users, conversations, messages, and RAG documents.
Implementations must assign ids under a lock so concurrent creates produce
exactly one row per entity.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from vizassist.db.models import Conversation, Document, Message, User
from vizassist.rag import ranker


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Storage(ABC):
    """Create/get/list access for every persisted entity."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    def create_user(self, username: str, password: str) -> User: ...

    @abstractmethod
    def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    @abstractmethod
    def create_conversation(self, user_id: int, title: str | None = None) -> Conversation: ...

    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Conversation | None: ...

    @abstractmethod
    def list_user_conversations(self, user_id: int) -> list[Conversation]: ...

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    @abstractmethod
    def create_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        context: dict[str, Any] | None = None,
    ) -> Message:
        """Insert a message and bump its conversation's ``updated_at``."""

    @abstractmethod
    def get_message(self, message_id: int) -> Message | None: ...

    @abstractmethod
    def list_conversation_messages(self, conversation_id: int) -> list[Message]:
        """Return the conversation's messages, oldest first."""

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    def create_document(
        self,
        title: str,
        content: str,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Document: ...

    @abstractmethod
    def get_document(self, document_id: int) -> Document | None: ...

    @abstractmethod
    def list_documents(self) -> list[Document]:
        """Return all documents in creation order."""

    def search_similar_documents(self, embedding: list[float], limit: int = 3) -> list[Document]:
        """Return the *limit* documents closest to *embedding* by cosine similarity."""
        return ranker.search(embedding, self.list_documents(), limit)


_DEFAULT_CONVERSATION_TITLE = "New Conversation"


class MemoryStorage(Storage):
    """Dict-backed storage with per-entity id counters.

    Lives for the process; nothing is written to disk.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, User] = {}
        self._conversations: dict[int, Conversation] = {}
        self._messages: dict[int, Message] = {}
        self._documents: dict[int, Document] = {}
        self._next_id = {"user": 1, "conversation": 1, "message": 1, "document": 1}

    def _allocate(self, kind: str) -> int:
        # caller holds self._lock
        value = self._next_id[kind]
        self._next_id[kind] = value + 1
        return value

    # Users

    def create_user(self, username: str, password: str) -> User:
        with self._lock:
            user = User(id=self._allocate("user"), username=username, password=password)
            self._users[user.id] = user
            return user

    def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return next((u for u in self._users.values() if u.username == username), None)

    # Conversations

    def create_conversation(self, user_id: int, title: str | None = None) -> Conversation:
        now = utcnow()
        with self._lock:
            conversation = Conversation(
                id=self._allocate("conversation"),
                user_id=user_id,
                title=title or _DEFAULT_CONVERSATION_TITLE,
                created_at=now,
                updated_at=now,
            )
            self._conversations[conversation.id] = conversation
            return conversation

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def list_user_conversations(self, user_id: int) -> list[Conversation]:
        return [c for c in self._conversations.values() if c.user_id == user_id]

    # Messages

    def create_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        context: dict[str, Any] | None = None,
    ) -> Message:
        now = utcnow()
        with self._lock:
            message = Message(
                id=self._allocate("message"),
                conversation_id=conversation_id,
                role=role,
                content=content,
                context=context,
                created_at=now,
            )
            self._messages[message.id] = message
            conversation = self._conversations.get(conversation_id)
            if conversation is not None:
                conversation.updated_at = now
            return message

    def get_message(self, message_id: int) -> Message | None:
        return self._messages.get(message_id)

    def list_conversation_messages(self, conversation_id: int) -> list[Message]:
        # ids are allocated in creation order, so they break created_at ties
        messages = [m for m in self._messages.values() if m.conversation_id == conversation_id]
        return sorted(messages, key=lambda m: (m.created_at or now_floor(), m.id))

    # Documents

    def create_document(
        self,
        title: str,
        content: str,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        now = utcnow()
        with self._lock:
            document = Document(
                id=self._allocate("document"),
                title=title,
                content=content,
                embedding=list(embedding) if embedding is not None else None,
                metadata=dict(metadata or {}),
                created_at=now,
                updated_at=now,
            )
            self._documents[document.id] = document
            return document

    def get_document(self, document_id: int) -> Document | None:
        return self._documents.get(document_id)

    def list_documents(self) -> list[Document]:
        return list(self._documents.values())


def now_floor() -> datetime:
    """Sort key for records missing a timestamp: before everything else."""
    return datetime.min.replace(tzinfo=timezone.utc)
