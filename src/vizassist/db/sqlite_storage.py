"""SQLite-backed implementation of the Storage interface.

Embeddings, metadata and message context are stored as JSON text;
timestamps as ISO-8601 strings. Similarity search is still the linear
cosine scan from ``vizassist.rag.ranker`` over all stored documents.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime
from typing import Any

from vizassist.db.models import Conversation, Document, Message, User
from vizassist.db.storage import Storage, utcnow


class SqliteStorage(Storage):
    """Data access layer over an open sqlite3.Connection.

    The connection is owned by the caller and must be closed after use.
    Writes are serialised with a lock so one connection can be shared
    across request threads.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see vizassist.db.schema.initialize).
        """
        self._conn = conn
        self._lock = threading.Lock()

    def _insert(self, sql: str, params: tuple) -> int:
        with self._lock:
            cur = self._conn.execute(sql, params)
            self._conn.commit()
            return int(cur.lastrowid)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, username: str, password: str) -> User:
        user_id = self._insert(
            "INSERT INTO users (username, password) VALUES (?, ?)", (username, password)
        )
        return User(id=user_id, username=username, password=password)

    def get_user(self, user_id: int) -> User | None:
        row = self._conn.execute(
            "SELECT id, username, password FROM users WHERE id = ?", (user_id,)
        ).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_username(self, username: str) -> User | None:
        row = self._conn.execute(
            "SELECT id, username, password FROM users WHERE username = ?", (username,)
        ).fetchone()
        return _row_to_user(row) if row else None

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(self, user_id: int, title: str | None = None) -> Conversation:
        now = utcnow()
        title = title or "New Conversation"
        conversation_id = self._insert(
            """
            INSERT INTO conversations (user_id, title, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, title, now.isoformat(), now.isoformat()),
        )
        return Conversation(
            id=conversation_id, user_id=user_id, title=title, created_at=now, updated_at=now
        )

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        row = self._conn.execute(
            "SELECT id, user_id, title, created_at, updated_at FROM conversations WHERE id = ?",
            (conversation_id,),
        ).fetchone()
        return _row_to_conversation(row) if row else None

    def list_user_conversations(self, user_id: int) -> list[Conversation]:
        rows = self._conn.execute(
            "SELECT id, user_id, title, created_at, updated_at FROM conversations "
            "WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [_row_to_conversation(r) for r in rows]

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def create_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        context: dict[str, Any] | None = None,
    ) -> Message:
        now = utcnow()
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO messages (conversation_id, role, content, context, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    conversation_id,
                    role,
                    content,
                    json.dumps(context) if context is not None else None,
                    now.isoformat(),
                ),
            )
            self._conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now.isoformat(), conversation_id),
            )
            self._conn.commit()
            message_id = int(cur.lastrowid)
        return Message(
            id=message_id,
            conversation_id=conversation_id,
            role=role,
            content=content,
            context=context,
            created_at=now,
        )

    def get_message(self, message_id: int) -> Message | None:
        row = self._conn.execute(
            "SELECT id, conversation_id, role, content, context, created_at "
            "FROM messages WHERE id = ?",
            (message_id,),
        ).fetchone()
        return _row_to_message(row) if row else None

    def list_conversation_messages(self, conversation_id: int) -> list[Message]:
        rows = self._conn.execute(
            "SELECT id, conversation_id, role, content, context, created_at "
            "FROM messages WHERE conversation_id = ? ORDER BY created_at, id",
            (conversation_id,),
        ).fetchall()
        return [_row_to_message(r) for r in rows]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(
        self,
        title: str,
        content: str,
        embedding: list[float] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        now = utcnow()
        metadata = dict(metadata or {})
        document_id = self._insert(
            """
            INSERT INTO documents (title, content, embedding, metadata, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                title,
                content,
                json.dumps(list(embedding)) if embedding is not None else None,
                json.dumps(metadata),
                now.isoformat(),
                now.isoformat(),
            ),
        )
        return Document(
            id=document_id,
            title=title,
            content=content,
            embedding=list(embedding) if embedding is not None else None,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )

    def get_document(self, document_id: int) -> Document | None:
        row = self._conn.execute(
            "SELECT id, title, content, embedding, metadata, created_at, updated_at "
            "FROM documents WHERE id = ?",
            (document_id,),
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self) -> list[Document]:
        rows = self._conn.execute(
            "SELECT id, title, content, embedding, metadata, created_at, updated_at "
            "FROM documents ORDER BY id"
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def count_documents(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_user(row: sqlite3.Row) -> User:
    return User(id=row["id"], username=row["username"], password=row["password"])


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=_ts(row["created_at"]),
        updated_at=_ts(row["updated_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        context=json.loads(row["context"]) if row["context"] else None,
        created_at=_ts(row["created_at"]),
    )


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        metadata=json.loads(row["metadata"]),
        created_at=_ts(row["created_at"]),
        updated_at=_ts(row["updated_at"]),
    )
