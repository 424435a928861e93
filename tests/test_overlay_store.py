"""Unit tests for the overlay store cache - in-memory repository, no I/O."""

import asyncio

import pytest

from pearlarchive.core.gateway import MutationGateway
from pearlarchive.core.overlay import OverlayStore
from pearlarchive.exceptions import StorageError
from pearlarchive.models.overlay import DeletionRecord, EditRecord, ItemType
from pearlarchive.models.principal import Principal
from pearlarchive.storage.base import OverlayRepository


class MemoryRepository(OverlayRepository):
    """Dict-backed repository that counts reads and can be made to fail."""

    def __init__(self):
        self.deletions: list[DeletionRecord] = []
        self.edits: dict[tuple[str, int], EditRecord] = {}
        self.favorites: dict[str, list[str]] = {}
        self.reads = 0
        self.favorite_reads = 0
        self.fail = False

    def _check(self):
        if self.fail:
            raise StorageError("backend unavailable")

    async def list_deletions(self):
        self._check()
        self.reads += 1
        return list(self.deletions)

    async def add_thread_deletion(self, thread_id, deleted_by=None):
        self.deletions.append(DeletionRecord(item_type=ItemType.THREAD, thread_id=thread_id))

    async def add_tweet_deletion(self, thread_id, tweet_index, deleted_by=None):
        self.deletions.append(
            DeletionRecord(item_type=ItemType.TWEET, thread_id=thread_id, tweet_index=tweet_index)
        )

    async def remove_thread_deletion(self, thread_id):
        self.deletions = [d for d in self.deletions if not (d.is_thread and d.thread_id == thread_id)]

    async def remove_tweet_deletion(self, thread_id, tweet_index):
        self.deletions = [
            d for d in self.deletions
            if d.is_thread or (d.thread_id, d.tweet_index) != (thread_id, tweet_index)
        ]

    async def list_edits(self):
        self._check()
        return list(self.edits.values())

    async def upsert_edit(self, edit):
        self.edits[edit.key] = edit

    async def delete_edit(self, thread_id, tweet_index):
        self.edits.pop((thread_id, tweet_index), None)

    async def list_favorites(self, user_id):
        self._check()
        self.favorite_reads += 1
        return list(self.favorites.get(user_id, []))

    async def add_favorite(self, user_id, thread_id):
        favorites = self.favorites.setdefault(user_id, [])
        if thread_id not in favorites:
            favorites.append(thread_id)

    async def remove_favorite(self, user_id, thread_id):
        if thread_id in self.favorites.get(user_id, []):
            self.favorites[user_id].remove(thread_id)

    async def clear(self):
        self.deletions, self.edits, self.favorites = [], {}, {}

    async def close(self):
        pass


class GatedRepository(MemoryRepository):
    """Holds reads open after fetching rows until released."""

    def __init__(self):
        super().__init__()
        self.read_done = asyncio.Event()
        self.release = asyncio.Event()

    async def _hold(self, rows):
        self.read_done.set()
        await self.release.wait()
        return rows

    async def list_deletions(self):
        return await self._hold(await super().list_deletions())

    async def list_favorites(self, user_id):
        return await self._hold(await super().list_favorites(user_id))


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def overlay(repository):
    return OverlayStore(repository, ttl_seconds=60)


class TestSnapshot:
    """Test snapshot caching and invalidation."""

    @pytest.mark.asyncio
    async def test_first_read_fetches(self, overlay, repository):
        await repository.add_thread_deletion("1001")
        snap = await overlay.snapshot()

        assert [d.thread_id for d in snap.deletions] == ["1001"]
        assert snap.version == 1
        assert snap.stale is False
        assert repository.reads == 1

    @pytest.mark.asyncio
    async def test_fresh_snapshot_is_cached(self, overlay, repository):
        await overlay.snapshot()
        await overlay.snapshot()
        assert repository.reads == 1

    @pytest.mark.asyncio
    async def test_cached_snapshot_may_lag_writes(self, overlay, repository):
        """Without invalidation a write is not visible until the snapshot expires."""
        await overlay.snapshot()
        await repository.add_thread_deletion("1001")

        snap = await overlay.snapshot()

        assert snap.deletions == []

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, overlay, repository):
        await overlay.snapshot()
        await repository.add_tweet_deletion("1001", 1)
        overlay.invalidate()

        snap = await overlay.snapshot()

        assert len(snap.deletions) == 1
        assert snap.version == 2
        assert repository.reads == 2

    @pytest.mark.asyncio
    async def test_expired_snapshot_refetches(self, repository):
        overlay = OverlayStore(repository, ttl_seconds=0)
        await overlay.snapshot()
        await overlay.snapshot()
        assert repository.reads == 2

    @pytest.mark.asyncio
    async def test_refresh_is_unconditional(self, overlay, repository):
        await overlay.snapshot()
        await overlay.refresh()
        assert repository.reads == 2
        assert overlay.version == 2

    def test_version_before_fetch(self, overlay):
        assert overlay.version == 0
        assert overlay.current is None
        assert overlay.is_fresh() is False


class TestStorageFailure:
    """Test last-known-good behaviour when storage fails."""

    @pytest.mark.asyncio
    async def test_serves_last_known_good_marked_stale(self, overlay, repository):
        await repository.add_thread_deletion("1001")
        await overlay.snapshot()

        repository.fail = True
        overlay.invalidate()
        snap = await overlay.snapshot()

        assert [d.thread_id for d in snap.deletions] == ["1001"]
        assert snap.stale is True
        assert snap.version == 1

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self, overlay, repository):
        await overlay.snapshot()
        repository.fail = True
        overlay.invalidate()
        await overlay.snapshot()

        repository.fail = False
        snap = await overlay.snapshot()

        assert snap.stale is False
        assert snap.version == 2

    @pytest.mark.asyncio
    async def test_raises_without_any_snapshot(self, overlay, repository):
        repository.fail = True
        with pytest.raises(StorageError):
            await overlay.snapshot()

    @pytest.mark.asyncio
    async def test_refresh_propagates_error(self, overlay, repository):
        await overlay.snapshot()
        repository.fail = True

        with pytest.raises(StorageError):
            await overlay.refresh()
        assert overlay.current.stale is True


class TestFavorites:
    """Test per-user favorite caching."""

    @pytest.mark.asyncio
    async def test_anonymous_has_no_favorite_set(self, overlay):
        assert await overlay.favorites_for(None) is None

    @pytest.mark.asyncio
    async def test_favorites_cached_per_user(self, overlay, repository):
        user = Principal(id="user-2")
        await repository.add_favorite("user-2", "1001")

        assert await overlay.favorites_for(user) == frozenset({"1001"})
        assert await overlay.favorites_for(user) == frozenset({"1001"})
        assert repository.favorite_reads == 1

    @pytest.mark.asyncio
    async def test_invalidate_favorites(self, overlay, repository):
        user = Principal(id="user-2")
        await overlay.favorites_for(user)
        await repository.add_favorite("user-2", "1002")

        overlay.invalidate_favorites("user-2")

        assert await overlay.favorites_for(user) == frozenset({"1002"})

    @pytest.mark.asyncio
    async def test_cached_favorites_survive_storage_failure(self, repository):
        overlay = OverlayStore(repository, ttl_seconds=0)
        user = Principal(id="user-2")
        await repository.add_favorite("user-2", "1001")
        await overlay.favorites_for(user)

        repository.fail = True

        assert await overlay.favorites_for(user) == frozenset({"1001"})


class TestInvalidationDuringFetch:
    """Writes that land while a read is in flight must not be masked."""

    @pytest.mark.asyncio
    async def test_deletion_visible_after_racing_fetch(self, admin):
        repository = GatedRepository()
        overlay = OverlayStore(repository, ttl_seconds=60)
        gateway = MutationGateway(overlay)

        pending = asyncio.create_task(overlay.snapshot())
        await repository.read_done.wait()
        await gateway.delete_thread(admin, "1001")
        repository.release.set()

        assert (await pending).deletions == []
        assert overlay.is_fresh() is False

        snap = await overlay.snapshot()
        assert [d.thread_id for d in snap.deletions] == ["1001"]

    @pytest.mark.asyncio
    async def test_refresh_during_invalidate_stays_dirty(self):
        repository = GatedRepository()
        overlay = OverlayStore(repository, ttl_seconds=60)

        pending = asyncio.create_task(overlay.refresh())
        await repository.read_done.wait()
        overlay.invalidate()
        repository.release.set()
        await pending

        await overlay.snapshot()
        assert repository.reads == 2

    @pytest.mark.asyncio
    async def test_favorite_visible_after_racing_fetch(self, user):
        repository = GatedRepository()
        overlay = OverlayStore(repository, ttl_seconds=60)
        gateway = MutationGateway(overlay)

        pending = asyncio.create_task(overlay.favorites_for(user))
        await repository.read_done.wait()
        await gateway.add_favorite(user, "1004")
        repository.release.set()

        assert await pending == frozenset()
        assert await overlay.favorites_for(user) == frozenset({"1004"})

    @pytest.mark.asyncio
    async def test_quiet_fetch_is_cached(self):
        repository = GatedRepository()
        repository.release.set()
        overlay = OverlayStore(repository, ttl_seconds=60)

        await overlay.snapshot()

        assert overlay.is_fresh() is True
