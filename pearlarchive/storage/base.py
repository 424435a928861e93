"""Abstract overlay repository interface."""

from abc import ABC, abstractmethod

from pearlarchive.models.overlay import DeletionRecord, EditRecord


class OverlayRepository(ABC):
    """Key-based storage for deletion, edit and favorite records."""

    @abstractmethod
    async def list_deletions(self) -> list[DeletionRecord]:
        """Return every thread and tweet tombstone."""
        ...

    @abstractmethod
    async def add_thread_deletion(self, thread_id: str, deleted_by: str | None = None) -> None:
        """
        Tombstone a whole thread. No-op if already deleted.

        Args:
            thread_id: Thread identifier
            deleted_by: Acting user id, audit only
        """
        ...

    @abstractmethod
    async def add_tweet_deletion(
        self, thread_id: str, tweet_index: int, deleted_by: str | None = None
    ) -> None:
        """
        Tombstone one tweet by its original index. No-op if already deleted.

        Args:
            thread_id: Thread identifier
            tweet_index: Zero-based index in the original corpus thread
            deleted_by: Acting user id, audit only
        """
        ...

    @abstractmethod
    async def remove_thread_deletion(self, thread_id: str) -> None:
        """Remove the thread tombstone(s) for a thread."""
        ...

    @abstractmethod
    async def remove_tweet_deletion(self, thread_id: str, tweet_index: int) -> None:
        """Remove the tombstone(s) for one tweet."""
        ...

    @abstractmethod
    async def list_edits(self) -> list[EditRecord]:
        """Return every tweet edit."""
        ...

    @abstractmethod
    async def upsert_edit(self, edit: EditRecord) -> None:
        """Store an edit, replacing any existing one with the same key."""
        ...

    @abstractmethod
    async def delete_edit(self, thread_id: str, tweet_index: int) -> None:
        """Remove the edit for a tweet, restoring its original content."""
        ...

    @abstractmethod
    async def list_favorites(self, user_id: str) -> list[str]:
        """Return the user's favorite thread ids."""
        ...

    @abstractmethod
    async def add_favorite(self, user_id: str, thread_id: str) -> None:
        """Set-insert a favorite."""
        ...

    @abstractmethod
    async def remove_favorite(self, user_id: str, thread_id: str) -> None:
        """Set-delete a favorite."""
        ...

    async def is_favorite(self, user_id: str, thread_id: str) -> bool:
        return thread_id in await self.list_favorites(user_id)

    @abstractmethod
    async def clear(self) -> None:
        """Remove all overlay records."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Cleanup connections and resources."""
        ...

    async def __aenter__(self) -> "OverlayRepository":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - cleanup."""
        await self.close()
