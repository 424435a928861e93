"""Archive facade - coordinates corpus, overlays, resolution and filtering."""

from pearlarchive.config import ArchiveConfig, StorageBackend
from pearlarchive.core.filters import filter_threads
from pearlarchive.core.gateway import MutationGateway
from pearlarchive.core.loader import load_corpus
from pearlarchive.core.ordering import SessionOrdering, SortMode, order_threads
from pearlarchive.core.overlay import OverlayStore
from pearlarchive.core.resolver import resolve
from pearlarchive.exceptions import ConfigError, CorpusLoadError
from pearlarchive.logging import configure_logging, get_logger
from pearlarchive.models.principal import Principal, Role
from pearlarchive.models.thread import Thread
from pearlarchive.models.view import ArchiveView, FilterState
from pearlarchive.storage.base import OverlayRepository
from pearlarchive.storage.redis_store import RedisOverlayStore
from pearlarchive.storage.sqlite_store import SQLiteOverlayStore


def build_repository(config: ArchiveConfig) -> OverlayRepository:
    """
    Create the overlay repository selected by the config.

    Raises:
        ConfigError: If the selected backend has no location configured
    """
    if config.storage_backend == StorageBackend.REDIS:
        if not config.redis_url:
            raise ConfigError("redis_url is required for the redis backend")
        return RedisOverlayStore(config.redis_url)
    if not config.sqlite_path:
        raise ConfigError("sqlite_path is required for the sqlite backend")
    return SQLiteOverlayStore(config.sqlite_path)


class Archive:
    """
    High-level interface over the curated thread archive.

    Example:
        async with Archive() as archive:
            view = await archive.view(FilterState(category="Pearl"))
            print(view.stats.filtered_count)
    """

    def __init__(
        self,
        config: ArchiveConfig | None = None,
        repository: OverlayRepository | None = None,
    ):
        """
        Initialize archive with optional configuration.

        Args:
            config: ArchiveConfig instance, uses defaults if None
            repository: Overlay repository, built from config if None
        """
        self.config = config or ArchiveConfig()
        self.repository = repository or build_repository(self.config)
        self.store = OverlayStore(self.repository, self.config.overlay_ttl_seconds)
        self.gateway = MutationGateway(self.store)
        self._corpus: list[Thread] | None = None
        self._resolved: list[Thread] = []
        self._resolved_version: int | None = None
        self._log = get_logger("archive")

    async def __aenter__(self) -> "Archive":
        """Async context manager entry - initialize logging."""
        configure_logging(self.config)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - cleanup resources."""
        await self.repository.close()

    @property
    def corpus(self) -> list[Thread] | None:
        return self._corpus

    async def load(self, force: bool = False) -> list[Thread]:
        """
        Load the base corpus once.

        Args:
            force: Reload even if already loaded

        Raises:
            CorpusLoadError: If the corpus cannot be read
        """
        if self._corpus is not None and not force:
            return self._corpus

        try:
            self._corpus = await load_corpus(self.config.corpus_path)
        except CorpusLoadError as e:
            self._log.error("corpus_load_failed", path=self.config.corpus_path, error=str(e))
            raise

        self._resolved_version = None
        return self._corpus

    async def resolved(self) -> list[Thread]:
        """Effective threads for the current overlay snapshot."""
        corpus = await self.load()
        snapshot = await self.store.snapshot()

        if self._resolved_version != snapshot.version:
            self._resolved = resolve(corpus, snapshot.deletions, snapshot.edits)
            self._resolved_version = snapshot.version
            self._log.debug(
                "corpus_resolved",
                version=snapshot.version,
                threads=len(self._resolved),
                hidden=len(corpus) - len(self._resolved),
            )
        return self._resolved

    async def view(
        self,
        state: FilterState | None = None,
        principal: Principal | None = None,
        sort_mode: SortMode = SortMode.CORPUS,
        ordering: SessionOrdering | None = None,
    ) -> ArchiveView:
        """
        Build the ordered, filtered view for a caller.

        Args:
            state: Active filters
            principal: Caller identity, None when anonymous
            sort_mode: Display order
            ordering: Session shuffle to reuse in random mode

        Returns:
            ArchiveView with threads, facets and stats
        """
        state = state or FilterState()
        effective = await self.resolved()

        favorites = None
        if state.favorites_only:
            favorites = await self.store.favorites_for(principal)

        result = filter_threads(effective, state, favorites)
        threads = order_threads(result.visible, sort_mode, ordering, effective)
        snapshot = self.store.current

        return ArchiveView(
            threads=threads,
            facets=result.facets,
            stats=result.stats,
            sort_mode=sort_mode.value,
            overlay_version=snapshot.version if snapshot else 0,
            stale=snapshot.stale if snapshot else False,
        )

    async def get_thread(self, thread_id: str) -> Thread | None:
        """Resolved thread by id, None if unknown or deleted."""
        for thread in await self.resolved():
            if thread.id == thread_id:
                return thread
        return None

    def principal_for(self, user_id: str | None, role: str | None = None) -> Principal | None:
        """
        Build a principal from upstream identity, promoting configured admins.

        Returns:
            Principal, or None when no user id is supplied
        """
        if not user_id:
            return None
        if user_id in self.config.admin_user_ids:
            return Principal(id=user_id, role=Role.ADMIN)
        try:
            resolved_role = Role(role.lower()) if role else Role.USER
        except ValueError:
            resolved_role = Role.USER
        return Principal(id=user_id, role=resolved_role)

    def session(self, principal: Principal | None = None, seed: int | None = None) -> "BrowseSession":
        """Start a browsing session for one client."""
        return BrowseSession(self, principal, seed)


class BrowseSession:
    """
    Per-client browsing state: filters, sort mode and shuffle.

    Changing filters never regenerates the shuffle. A role change (sign-in,
    sign-out, promotion) or an explicit ``reshuffle()`` does.
    """

    def __init__(self, archive: Archive, principal: Principal | None = None, seed: int | None = None):
        self.archive = archive
        self.state = FilterState()
        self.sort_mode = SortMode.RANDOM
        self.ordering = SessionOrdering(seed)
        self.principal = None
        self.set_principal(principal)

    def set_principal(self, principal: Principal | None) -> None:
        self.principal = principal
        self.ordering.observe_role(principal.role if principal else None)

    def update_filters(self, **changes) -> FilterState:
        """Merge filter changes into the current state."""
        self.state = FilterState.model_validate({**self.state.model_dump(), **changes})
        return self.state

    def reset_filters(self) -> FilterState:
        self.state = FilterState()
        return self.state

    def set_sort_mode(self, mode: SortMode) -> None:
        self.sort_mode = SortMode(mode)

    def reshuffle(self) -> None:
        """Generate a fresh permutation and switch to random order."""
        self.ordering.reshuffle()
        self.sort_mode = SortMode.RANDOM

    async def view(self) -> ArchiveView:
        return await self.archive.view(self.state, self.principal, self.sort_mode, self.ordering)
