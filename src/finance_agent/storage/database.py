"""SQLite storage for chat history and user profiles."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from finance_agent.config import get_config
from finance_agent.models.conversation import ChatHistoryEntry
from finance_agent.models.profile import UserProfile

PROFILE_FIELDS = ("first_name", "last_name", "email")


class FinanceDatabase:
    """SQLite database holding saved chat exchanges and profiles."""

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the database.

        Args:
            db_path: Path to the database file. Defaults to config path.
        """
        self.db_path = db_path or get_config().db_path
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS chat_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    conversation_id TEXT NOT NULL,
                    message TEXT NOT NULL,
                    response TEXT NOT NULL,
                    context_prompt TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_chat_history_user ON chat_history(user_id);
                CREATE INDEX IF NOT EXISTS idx_chat_history_conversation
                    ON chat_history(conversation_id);

                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    first_name TEXT,
                    last_name TEXT,
                    email TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)

    # Chat history

    def save_chat(self, entry: ChatHistoryEntry) -> int:
        """
        Save one chat exchange.

        Args:
            entry: The exchange to store

        Returns:
            Row id of the new entry
        """
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO chat_history
                (user_id, conversation_id, message, response, context_prompt, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.user_id,
                    entry.conversation_id,
                    entry.message,
                    entry.response,
                    entry.context_prompt,
                    entry.created_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    def get_chats(
        self,
        user_id: str,
        conversation_id: str | None = None,
        limit: int | None = None,
    ) -> list[ChatHistoryEntry]:
        """
        Get saved exchanges for a user, newest first.

        Args:
            user_id: Owner of the history
            conversation_id: Only return this conversation
            limit: Maximum number of entries

        Returns:
            List of ChatHistoryEntry
        """
        query = "SELECT * FROM chat_history WHERE user_id = ?"
        params: list[Any] = [user_id]

        if conversation_id:
            query += " AND conversation_id = ?"
            params.append(conversation_id)

        query += " ORDER BY created_at DESC, id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_chat(row) for row in rows]

    def clear_chats(self, user_id: str, conversation_id: str | None = None) -> int:
        """Delete saved exchanges. Returns the number removed."""
        with self._connection() as conn:
            if conversation_id:
                cursor = conn.execute(
                    "DELETE FROM chat_history WHERE user_id = ? AND conversation_id = ?",
                    (user_id, conversation_id),
                )
            else:
                cursor = conn.execute("DELETE FROM chat_history WHERE user_id = ?", (user_id,))
            return cursor.rowcount

    def _row_to_chat(self, row: Any) -> ChatHistoryEntry:
        return ChatHistoryEntry(
            id=row["id"],
            user_id=row["user_id"],
            conversation_id=row["conversation_id"],
            message=row["message"],
            response=row["response"],
            context_prompt=row["context_prompt"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # Profiles

    def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        with self._connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO profiles
                (id, first_name, last_name, email, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    profile.id,
                    profile.first_name,
                    profile.last_name,
                    profile.email,
                    profile.created_at.isoformat(),
                    profile.updated_at.isoformat(),
                ),
            )

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Get a profile by user id."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
            if row:
                return self._row_to_profile(row)
            return None

    def update_profile(self, user_id: str, **fields: str | None) -> UserProfile:
        """
        Update some profile fields, creating the profile if needed.

        Args:
            user_id: Profile to update
            **fields: Any of first_name, last_name, email

        Returns:
            The stored profile
        """
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown profile field(s): {', '.join(sorted(unknown))}")

        profile = self.get_profile(user_id) or UserProfile(id=user_id)
        profile = profile.model_copy(update={**fields, "updated_at": datetime.now()})
        self.save_profile(profile)
        return profile

    def _row_to_profile(self, row: Any) -> UserProfile:
        return UserProfile(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


# Global database instance
_db: FinanceDatabase | None = None


def get_database() -> FinanceDatabase:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = FinanceDatabase()
    return _db
