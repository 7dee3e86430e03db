"""vizassist storage layer."""

from vizassist.db.connection import Database
from vizassist.db.models import Conversation, Document, Message, User
from vizassist.db.schema import initialize
from vizassist.db.sqlite_storage import SqliteStorage
from vizassist.db.storage import MemoryStorage, Storage

__all__ = [
    "Conversation",
    "Database",
    "Document",
    "MemoryStorage",
    "Message",
    "SqliteStorage",
    "Storage",
    "User",
    "initialize",
]
