"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from vizassist.db.connection import Database
from vizassist.db.schema import initialize
from vizassist.db.sqlite_storage import SqliteStorage
from vizassist.db.storage import MemoryStorage

_VOCAB = ("bar", "line", "pie", "kpi", "tableau", "margin")


class KeywordEmbedder:
    """Deterministic embedder: one dimension per vocabulary word plus a bias."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float] | None:
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) for word in _VOCAB] + [1.0]


class FailingEmbedder:
    def embed(self, text: str) -> list[float] | None:
        return None


class RecordingCompleter:
    """Completion provider that records its inputs and returns a canned answer."""

    def __init__(self, answer: str = "This chart shows monthly revenue.") -> None:
        self.answer = answer
        self.calls: list[tuple[str, list, str]] = []

    def complete(self, system_prompt, history, user_message):
        self.calls.append((system_prompt, list(history), user_message))
        return self.answer


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".vizassist.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def sqlite_storage(tmp_db) -> SqliteStorage:
    return SqliteStorage(tmp_db)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def completer() -> RecordingCompleter:
    return RecordingCompleter()


@pytest.fixture
def failing_embedder() -> FailingEmbedder:
    return FailingEmbedder()
