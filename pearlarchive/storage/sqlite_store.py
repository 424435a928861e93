"""SQLite-based overlay storage."""

import json
import time
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from pearlarchive.core.resolver import coerce_records
from pearlarchive.exceptions import StorageError
from pearlarchive.models.overlay import DeletionRecord, EditRecord, ItemType
from pearlarchive.storage.base import OverlayRepository

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS deleted_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_type TEXT NOT NULL,
        thread_id TEXT NOT NULL,
        tweet_index INTEGER,
        deleted_at REAL NOT NULL,
        deleted_by TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_deleted_thread ON deleted_items(thread_id)",
    """
    CREATE TABLE IF NOT EXISTS tweet_edits (
        thread_id TEXT NOT NULL,
        tweet_index INTEGER NOT NULL,
        edited_text TEXT,
        hidden_media TEXT,
        edited_at REAL NOT NULL,
        edited_by TEXT,
        PRIMARY KEY (thread_id, tweet_index)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS favorites (
        user_id TEXT NOT NULL,
        thread_id TEXT NOT NULL,
        created_at REAL NOT NULL,
        PRIMARY KEY (user_id, thread_id)
    )
    """,
)


def _decode_media(raw: str | None):
    """Parse the hidden_media column, leaving undecodable text for validation to reject."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class SQLiteOverlayStore(OverlayRepository):
    """SQLite overlay repository using aiosqlite."""

    def __init__(self, db_path: str = ".pearlarchive.db"):
        """
        Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database connection and schema exist."""
        if self._db is None:
            self._db = await aiosqlite.connect(self.db_path)
            for statement in _SCHEMA:
                await self._db.execute(statement)
            await self._db.commit()
        return self._db

    @asynccontextmanager
    async def _session(self, operation: str):
        """Yield a connection, translating driver errors into StorageError."""
        try:
            db = await self._ensure_db()
            yield db
        except aiosqlite.Error as e:
            raise StorageError(f"{operation} failed: {e}") from e

    async def list_deletions(self) -> list[DeletionRecord]:
        async with self._session("list_deletions") as db:
            async with db.execute(
                "SELECT id, item_type, thread_id, tweet_index, deleted_at, deleted_by "
                "FROM deleted_items ORDER BY id"
            ) as cursor:
                rows = await cursor.fetchall()

        return coerce_records(
            (
                {
                    "id": row_id,
                    "item_type": item_type,
                    "thread_id": thread_id,
                    "tweet_index": tweet_index,
                    "deleted_at": deleted_at,
                    "deleted_by": deleted_by,
                }
                for row_id, item_type, thread_id, tweet_index, deleted_at, deleted_by in rows
            ),
            DeletionRecord,
            "deletion",
        )

    async def _add_deletion(
        self,
        item_type: ItemType,
        thread_id: str,
        tweet_index: int | None,
        deleted_by: str | None,
    ) -> None:
        async with self._session(f"delete_{item_type.value}") as db:
            async with db.execute(
                "SELECT 1 FROM deleted_items WHERE item_type = ? AND thread_id = ? "
                "AND tweet_index IS ?",
                (item_type.value, thread_id, tweet_index),
            ) as cursor:
                if await cursor.fetchone() is not None:
                    return

            await db.execute(
                """
                INSERT INTO deleted_items (item_type, thread_id, tweet_index, deleted_at, deleted_by)
                VALUES (?, ?, ?, ?, ?)
                """,
                (item_type.value, thread_id, tweet_index, time.time(), deleted_by),
            )
            await db.commit()

    async def add_thread_deletion(self, thread_id: str, deleted_by: str | None = None) -> None:
        await self._add_deletion(ItemType.THREAD, thread_id, None, deleted_by)

    async def add_tweet_deletion(
        self, thread_id: str, tweet_index: int, deleted_by: str | None = None
    ) -> None:
        await self._add_deletion(ItemType.TWEET, thread_id, tweet_index, deleted_by)

    async def remove_thread_deletion(self, thread_id: str) -> None:
        async with self._session("restore_thread") as db:
            await db.execute(
                "DELETE FROM deleted_items WHERE thread_id = ? AND item_type = ?",
                (thread_id, ItemType.THREAD.value),
            )
            await db.commit()

    async def remove_tweet_deletion(self, thread_id: str, tweet_index: int) -> None:
        async with self._session("restore_tweet") as db:
            await db.execute(
                "DELETE FROM deleted_items WHERE thread_id = ? AND item_type = ? AND tweet_index = ?",
                (thread_id, ItemType.TWEET.value, tweet_index),
            )
            await db.commit()

    async def list_edits(self) -> list[EditRecord]:
        async with self._session("list_edits") as db:
            async with db.execute(
                "SELECT thread_id, tweet_index, edited_text, hidden_media, edited_at, edited_by "
                "FROM tweet_edits"
            ) as cursor:
                rows = await cursor.fetchall()

        return coerce_records(
            (
                {
                    "thread_id": thread_id,
                    "tweet_index": tweet_index,
                    "edited_text": edited_text,
                    "hidden_media": _decode_media(hidden_media),
                    "edited_at": edited_at,
                    "edited_by": edited_by,
                }
                for thread_id, tweet_index, edited_text, hidden_media, edited_at, edited_by in rows
            ),
            EditRecord,
            "edit",
        )

    async def upsert_edit(self, edit: EditRecord) -> None:
        hidden_media = json.dumps(edit.hidden_media) if edit.hidden_media is not None else None
        edited_at = edit.edited_at.timestamp() if edit.edited_at else time.time()

        async with self._session("save_tweet_edit") as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO tweet_edits
                    (thread_id, tweet_index, edited_text, hidden_media, edited_at, edited_by)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    edit.thread_id,
                    edit.tweet_index,
                    edit.edited_text,
                    hidden_media,
                    edited_at,
                    edit.edited_by,
                ),
            )
            await db.commit()

    async def delete_edit(self, thread_id: str, tweet_index: int) -> None:
        async with self._session("delete_tweet_edit") as db:
            await db.execute(
                "DELETE FROM tweet_edits WHERE thread_id = ? AND tweet_index = ?",
                (thread_id, tweet_index),
            )
            await db.commit()

    async def list_favorites(self, user_id: str) -> list[str]:
        async with self._session("list_favorites") as db:
            async with db.execute(
                "SELECT thread_id FROM favorites WHERE user_id = ? ORDER BY created_at",
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [thread_id for (thread_id,) in rows]

    async def add_favorite(self, user_id: str, thread_id: str) -> None:
        async with self._session("add_favorite") as db:
            await db.execute(
                "INSERT OR IGNORE INTO favorites (user_id, thread_id, created_at) VALUES (?, ?, ?)",
                (user_id, thread_id, time.time()),
            )
            await db.commit()

    async def remove_favorite(self, user_id: str, thread_id: str) -> None:
        async with self._session("remove_favorite") as db:
            await db.execute(
                "DELETE FROM favorites WHERE user_id = ? AND thread_id = ?",
                (user_id, thread_id),
            )
            await db.commit()

    async def is_favorite(self, user_id: str, thread_id: str) -> bool:
        async with self._session("is_favorite") as db:
            async with db.execute(
                "SELECT 1 FROM favorites WHERE user_id = ? AND thread_id = ?",
                (user_id, thread_id),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def clear(self) -> None:
        """Remove all overlay records."""
        async with self._session("clear") as db:
            for table in ("deleted_items", "tweet_edits", "favorites"):
                await db.execute(f"DELETE FROM {table}")
            await db.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
