"""SQLite-based persistence gateway for agent workspaces."""

import sqlite3
import json
import logging
import threading
from pathlib import Path
from datetime import datetime
from typing import Optional, List

from errors import PersistenceError
from schemas.context import ContextItem, ContextKind
from schemas.profile import AgentProfile
from .blob_store import FileBlobStore
from .models import ClientSession, Workspace
from .profile_store import ProfileStore

logger = logging.getLogger(__name__)


class SQLiteProfileStore(ProfileStore):
    """
    SQLite-based store for profiles, context items and clients.

    File bytes are kept in a FileBlobStore; rows hold the reference and
    bytes are rehydrated on load. Writes for one token are serialized.
    """

    def __init__(self, db_path: str = "data/agent_console.db", blob_store: Optional[FileBlobStore] = None):
        """
        Initialize SQLite profile store.

        Args:
            db_path: Path to SQLite database file
            blob_store: Store for file payloads (default: "blobs" beside the database)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.blob_store = blob_store or FileBlobStore(str(self.db_path.parent / "blobs"))
        self._locks = {}
        self._locks_guard = threading.Lock()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _lock_for(self, token: str) -> threading.Lock:
        with self._locks_guard:
            if token not in self._locks:
                self._locks[token] = threading.Lock()
            return self._locks[token]

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                token TEXT PRIMARY KEY,
                profile_json TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS context_items (
                token TEXT NOT NULL,
                position INTEGER NOT NULL,
                item_id TEXT NOT NULL,
                kind TEXT NOT NULL CHECK(kind IN ('TEXT', 'URL', 'FILE')),
                content TEXT NOT NULL,
                file_name TEXT,
                mime_type TEXT,
                file_ref TEXT,
                PRIMARY KEY (token, item_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                token TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                role TEXT NOT NULL DEFAULT 'client',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_items_token ON context_items(token, position)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    def save(self, token: str, profile: Optional[AgentProfile], items: List[ContextItem]):
        """
        Replace the workspace stored for a token.

        Args:
            token: Access token
            profile: Profile to store (None keeps only the context items)
            items: Context items, file bytes go to the blob store
        """
        with self._lock_for(token):
            conn = self._get_connection()
            try:
                cursor = conn.cursor()
                now = datetime.now().isoformat()
                profile_json = profile.model_dump_json(by_alias=True) if profile else None

                cursor.execute(
                    """
                    INSERT OR REPLACE INTO profiles (token, profile_json, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (token, profile_json, now)
                )

                cursor.execute("SELECT file_ref FROM context_items WHERE token = ?", (token,))
                old_refs = {row["file_ref"] for row in cursor.fetchall() if row["file_ref"]}

                cursor.execute("DELETE FROM context_items WHERE token = ?", (token,))
                new_refs = set()
                for position, item in enumerate(items):
                    file_ref = None
                    if item.kind == ContextKind.FILE and item.file_binary:
                        file_ref = self.blob_store.put(token, item.id, item.file_name, item.file_binary)
                        new_refs.add(file_ref)
                    cursor.execute(
                        """
                        INSERT INTO context_items
                        (token, position, item_id, kind, content, file_name, mime_type, file_ref)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (token, position, item.id, item.kind.value, item.content,
                         item.file_name, item.mime_type, file_ref)
                    )

                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(f"Could not save workspace for {token}: {e}") from e
            finally:
                conn.close()

            for ref in old_refs - new_refs:
                self.blob_store.delete(ref)

        logger.debug(f"Saved workspace for {token} ({len(items)} items)")

    def load(self, token: str) -> Optional[Workspace]:
        """
        Load the workspace for a token with file bytes rehydrated.

        Args:
            token: Access token

        Returns:
            Workspace or None if nothing was stored
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM profiles WHERE token = ?", (token,))
            profile_row = cursor.fetchone()

            cursor.execute(
                "SELECT * FROM context_items WHERE token = ? ORDER BY position",
                (token,)
            )
            item_rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not load workspace for {token}: {e}") from e
        finally:
            conn.close()

        if not profile_row and not item_rows:
            return None

        profile = None
        if profile_row and profile_row["profile_json"]:
            try:
                profile = AgentProfile.model_validate(json.loads(profile_row["profile_json"]))
            except ValueError as e:
                raise PersistenceError(f"Stored profile for {token} is corrupt: {e}") from e

        items = []
        for row in item_rows:
            file_binary = None
            if row["file_ref"]:
                try:
                    file_binary = self.blob_store.get(row["file_ref"])
                except PersistenceError as e:
                    logger.warning(f"Could not rehydrate item {row['item_id']}: {e}")
            items.append(ContextItem(
                id=row["item_id"],
                kind=ContextKind(row["kind"]),
                content=row["content"],
                file_name=row["file_name"],
                file_binary=file_binary,
                mime_type=row["mime_type"],
            ))

        updated_at = None
        if profile_row and profile_row["updated_at"]:
            updated_at = datetime.fromisoformat(profile_row["updated_at"])

        return Workspace(token=token, profile=profile, items=items, updated_at=updated_at)

    def register_client(self, token: str, email: str, role: str = "client", is_active: bool = True) -> ClientSession:
        """Create or replace the identity behind a token."""
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO clients (token, email, is_active, role, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (token, email, int(is_active), role, datetime.now().isoformat())
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not register client {email}: {e}") from e
        finally:
            conn.close()
        return ClientSession(token=token, email=email, is_active=is_active, role=role)

    def get_client(self, token: str) -> Optional[ClientSession]:
        """Look up a token; None if unknown."""
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM clients WHERE token = ?", (token,)).fetchone()
        finally:
            conn.close()

        if not row:
            return None
        return ClientSession(
            token=row["token"],
            email=row["email"],
            is_active=bool(row["is_active"]),
            role=row["role"],
        )
