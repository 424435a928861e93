"""Overlay store: cached, invalidatable view of the shared overlay records."""

import asyncio
import time
from datetime import datetime, timezone

from pearlarchive.exceptions import StorageError
from pearlarchive.logging import get_logger
from pearlarchive.models.overlay import OverlaySnapshot
from pearlarchive.models.principal import Principal
from pearlarchive.storage.base import OverlayRepository


class OverlayStore:
    """
    Eventually-consistent cache over an OverlayRepository.

    Holds the latest deletion and edit lists plus per-user favorite sets.
    ``invalidate()`` forces the next read to refetch; snapshots also expire
    after ``ttl_seconds``. When a refetch fails the last-known-good snapshot
    keeps being served, flagged as stale.

    Example:
        store = OverlayStore(SQLiteOverlayStore("overlay.db"))
        snap = await store.snapshot()
        effective = resolve(corpus, snap.deletions, snap.edits)
    """

    def __init__(self, repository: OverlayRepository, ttl_seconds: int = 60):
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self._snapshot: OverlaySnapshot | None = None
        self._fetched_at = 0.0
        self._dirty = True
        self._generation = 0
        self._lock = asyncio.Lock()
        self._favorites: dict[str, tuple[frozenset[str], float]] = {}
        self._favorite_generation = 0
        self._log = get_logger("overlay")

    @property
    def current(self) -> OverlaySnapshot | None:
        """Last snapshot fetched, without triggering I/O."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version if self._snapshot else 0

    def _expired(self, fetched_at: float) -> bool:
        return time.monotonic() - fetched_at >= self.ttl_seconds

    def is_fresh(self) -> bool:
        return (
            self._snapshot is not None
            and not self._dirty
            and not self._snapshot.stale
            and not self._expired(self._fetched_at)
        )

    def invalidate(self) -> None:
        """Mark the snapshot stale so the next read refetches."""
        self._dirty = True
        self._generation += 1

    def invalidate_favorites(self, user_id: str | None = None) -> None:
        """Drop cached favorites for one user, or for everyone."""
        self._favorite_generation += 1
        if user_id is None:
            self._favorites.clear()
        else:
            self._favorites.pop(user_id, None)

    async def _fetch(self) -> OverlaySnapshot:
        generation = self._generation
        try:
            deletions, edits = await asyncio.gather(
                self.repository.list_deletions(),
                self.repository.list_edits(),
            )
        except StorageError as e:
            self._log.warning("overlay_refresh_failed", error=str(e), version=self.version)
            if self._snapshot is not None and not self._snapshot.stale:
                self._snapshot = self._snapshot.model_copy(update={"stale": True})
            raise

        self._snapshot = OverlaySnapshot(
            deletions=deletions,
            edits=edits,
            version=self.version + 1,
            fetched_at=datetime.now(timezone.utc),
        )
        self._fetched_at = time.monotonic()
        # An invalidate() during the read means these rows may predate the write
        self._dirty = self._generation != generation
        self._log.debug(
            "overlay_refreshed",
            version=self._snapshot.version,
            deletions=len(deletions),
            edits=len(edits),
        )
        return self._snapshot

    async def refresh(self) -> OverlaySnapshot:
        """
        Refetch deletions and edits unconditionally.

        Raises:
            StorageError: If the repository read fails; the previous
                snapshot is kept and marked stale
        """
        async with self._lock:
            return await self._fetch()

    async def snapshot(self) -> OverlaySnapshot:
        """
        Return the current snapshot, refetching when stale or expired.

        Returns:
            Fresh snapshot, or the last-known-good one flagged stale if the
            refetch failed

        Raises:
            StorageError: If no snapshot has ever been fetched successfully
        """
        async with self._lock:
            if self.is_fresh():
                return self._snapshot
            try:
                return await self._fetch()
            except StorageError:
                if self._snapshot is None:
                    raise
                return self._snapshot

    async def favorites_for(self, principal: Principal | None) -> frozenset[str] | None:
        """
        Favorite thread ids for the caller.

        Returns:
            Frozen set of thread ids, or None for anonymous callers
        """
        if principal is None:
            return None

        cached = self._favorites.get(principal.id)
        if cached is not None and not self._expired(cached[1]):
            return cached[0]

        generation = self._favorite_generation
        try:
            favorites = frozenset(await self.repository.list_favorites(principal.id))
        except StorageError as e:
            if cached is None:
                raise
            self._log.warning("favorites_refresh_failed", user_id=principal.id, error=str(e))
            return cached[0]

        if self._favorite_generation == generation:
            self._favorites[principal.id] = (favorites, time.monotonic())
        return favorites
