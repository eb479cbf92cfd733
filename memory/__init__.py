"""Conversation state and workspace persistence."""

from .models import ClientSession, ConversationTurn, TurnRole, Workspace
from .conversation import ChatSession, ConversationState
from .profile_store import ProfileStore
from .blob_store import FileBlobStore
from .sqlite_store import SQLiteProfileStore
from .autosave import DebouncedAutoSaver

__all__ = [
    "ClientSession",
    "ConversationTurn",
    "TurnRole",
    "Workspace",
    "ChatSession",
    "ConversationState",
    "ProfileStore",
    "FileBlobStore",
    "SQLiteProfileStore",
    "DebouncedAutoSaver",
]
