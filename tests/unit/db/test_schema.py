"""Tests for database schema initialization."""

from __future__ import annotations

import sqlite3

import pytest

from vizassist.db.schema import TABLES, initialize


def _table_columns(conn, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {row["name"] for row in rows}


def test_all_tables_exist(tmp_db):
    names = {
        row["name"]
        for row in tmp_db.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    }
    assert set(TABLES) <= names


def test_messages_columns(tmp_db):
    assert _table_columns(tmp_db, "messages") == {
        "id", "conversation_id", "role", "content", "context", "created_at",
    }


def test_documents_columns(tmp_db):
    assert _table_columns(tmp_db, "documents") == {
        "id", "title", "content", "embedding", "metadata", "created_at", "updated_at",
    }


def test_initialize_idempotent(tmp_db):
    tmp_db.execute(
        "INSERT INTO conversations (user_id, title, created_at, updated_at) VALUES (1, 't', 'x', 'x')"
    )
    initialize(tmp_db)
    assert tmp_db.execute("SELECT COUNT(*) FROM conversations").fetchone()[0] == 1


def test_message_role_is_constrained(tmp_db):
    tmp_db.execute(
        "INSERT INTO conversations (id, user_id, created_at, updated_at) VALUES (1, 1, 'x', 'x')"
    )
    with pytest.raises(sqlite3.IntegrityError):
        tmp_db.execute(
            "INSERT INTO messages (conversation_id, role, content, created_at) VALUES (1, 'system', 'hi', 'x')"
        )


def test_messages_cascade_with_conversation(tmp_db):
    tmp_db.execute(
        "INSERT INTO conversations (id, user_id, created_at, updated_at) VALUES (1, 1, 'x', 'x')"
    )
    tmp_db.execute(
        "INSERT INTO messages (conversation_id, role, content, created_at) VALUES (1, 'user', 'hi', 'x')"
    )
    tmp_db.execute("DELETE FROM conversations WHERE id = 1")
    assert tmp_db.execute("SELECT COUNT(*) FROM messages").fetchone()[0] == 0
