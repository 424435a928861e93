"""Redis overlay storage implementation."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from pearlarchive.core.resolver import coerce_records
from pearlarchive.exceptions import StorageError
from pearlarchive.models.overlay import DeletionRecord, EditRecord, ItemType
from pearlarchive.storage.base import OverlayRepository


def _decode(raw: str):
    """Parse a stored JSON value, leaving garbage for validation to reject."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class RedisOverlayStore(OverlayRepository):
    """
    Redis-based overlay repository.

    Tombstones and edits live in hashes keyed by their natural key, so
    repeated writes overwrite instead of duplicating. Favorites are one set
    per user.

    Example:
        store = RedisOverlayStore("redis://localhost:6379/0")
        async with store:
            await store.add_thread_deletion("1234")
            deletions = await store.list_deletions()
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", key_prefix: str = "pearlarchive:"):
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for every key written
        """
        self.redis_url = redis_url
        self._client: Optional[redis.Redis] = None
        self._key_prefix = key_prefix

    async def _ensure_client(self) -> "redis.Redis":
        """Get or create Redis client."""
        if self._client is None:
            self._client = redis.from_url(self.redis_url, decode_responses=True)
        return self._client

    @asynccontextmanager
    async def _session(self, operation: str):
        try:
            yield await self._ensure_client()
        except RedisError as e:
            raise StorageError(f"{operation} failed: {e}") from e

    def _key(self, name: str) -> str:
        return f"{self._key_prefix}{name}"

    def _favorites_key(self, user_id: str) -> str:
        return self._key(f"favorites:{user_id}")

    @staticmethod
    def _field(thread_id: str, tweet_index: int) -> str:
        return f"{thread_id}:{tweet_index}"

    async def list_deletions(self) -> list[DeletionRecord]:
        async with self._session("list_deletions") as client:
            pipe = client.pipeline()
            pipe.hvals(self._key("deleted:threads"))
            pipe.hvals(self._key("deleted:tweets"))
            threads, tweets = await pipe.execute()

        return coerce_records(
            (_decode(raw) for raw in [*threads, *tweets]), DeletionRecord, "deletion"
        )

    async def _add_deletion(self, hash_name: str, field: str, record: DeletionRecord) -> None:
        async with self._session(f"delete_{record.item_type.value}") as client:
            await client.hsetnx(self._key(hash_name), field, record.model_dump_json())

    async def add_thread_deletion(self, thread_id: str, deleted_by: str | None = None) -> None:
        record = DeletionRecord(
            item_type=ItemType.THREAD,
            thread_id=thread_id,
            deleted_at=datetime.now(timezone.utc),
            deleted_by=deleted_by,
        )
        await self._add_deletion("deleted:threads", thread_id, record)

    async def add_tweet_deletion(
        self, thread_id: str, tweet_index: int, deleted_by: str | None = None
    ) -> None:
        record = DeletionRecord(
            item_type=ItemType.TWEET,
            thread_id=thread_id,
            tweet_index=tweet_index,
            deleted_at=datetime.now(timezone.utc),
            deleted_by=deleted_by,
        )
        await self._add_deletion("deleted:tweets", self._field(thread_id, tweet_index), record)

    async def remove_thread_deletion(self, thread_id: str) -> None:
        async with self._session("restore_thread") as client:
            await client.hdel(self._key("deleted:threads"), thread_id)

    async def remove_tweet_deletion(self, thread_id: str, tweet_index: int) -> None:
        async with self._session("restore_tweet") as client:
            await client.hdel(self._key("deleted:tweets"), self._field(thread_id, tweet_index))

    async def list_edits(self) -> list[EditRecord]:
        async with self._session("list_edits") as client:
            values = await client.hvals(self._key("edits"))
        return coerce_records((_decode(raw) for raw in values), EditRecord, "edit")

    async def upsert_edit(self, edit: EditRecord) -> None:
        if edit.edited_at is None:
            edit = edit.model_copy(update={"edited_at": datetime.now(timezone.utc)})
        async with self._session("save_tweet_edit") as client:
            await client.hset(
                self._key("edits"),
                self._field(edit.thread_id, edit.tweet_index),
                edit.model_dump_json(),
            )

    async def delete_edit(self, thread_id: str, tweet_index: int) -> None:
        async with self._session("delete_tweet_edit") as client:
            await client.hdel(self._key("edits"), self._field(thread_id, tweet_index))

    async def list_favorites(self, user_id: str) -> list[str]:
        async with self._session("list_favorites") as client:
            members = await client.smembers(self._favorites_key(user_id))
        return sorted(members)

    async def add_favorite(self, user_id: str, thread_id: str) -> None:
        async with self._session("add_favorite") as client:
            await client.sadd(self._favorites_key(user_id), thread_id)

    async def remove_favorite(self, user_id: str, thread_id: str) -> None:
        async with self._session("remove_favorite") as client:
            await client.srem(self._favorites_key(user_id), thread_id)

    async def is_favorite(self, user_id: str, thread_id: str) -> bool:
        async with self._session("is_favorite") as client:
            return bool(await client.sismember(self._favorites_key(user_id), thread_id))

    async def clear(self) -> None:
        """Clear all pearlarchive keys."""
        async with self._session("clear") as client:
            cursor = 0
            while True:
                cursor, keys = await client.scan(cursor, match=f"{self._key_prefix}*")
                if keys:
                    await client.delete(*keys)
                if cursor == 0:
                    break

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """Check if Redis is available."""
        try:
            client = await self._ensure_client()
            return await client.ping()
        except RedisError:
            return False
