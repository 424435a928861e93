"""Mutation gateway: the authorized write path into the overlays."""

from pearlarchive.core.overlay import OverlayStore
from pearlarchive.exceptions import (
    AuthenticationRequiredError,
    AuthorizationError,
    InvalidRequestError,
)
from pearlarchive.logging import get_logger
from pearlarchive.models.overlay import DeletionRecord, EditRecord
from pearlarchive.models.principal import Principal
from pearlarchive.models.view import MutationResult


def require_user(principal: Principal | None) -> Principal:
    """Return the principal, or raise if the caller is anonymous."""
    if principal is None:
        raise AuthenticationRequiredError("Sign in required")
    return principal


def require_admin(principal: Principal | None) -> Principal:
    """Return the principal, or raise unless the caller is an admin."""
    principal = require_user(principal)
    if not principal.is_admin:
        raise AuthorizationError("Admin role required")
    return principal


def _check_thread_id(thread_id: str) -> str:
    if not isinstance(thread_id, str) or not thread_id.strip():
        raise InvalidRequestError("thread_id must be a non-empty string")
    return thread_id


def _check_index(tweet_index: int) -> int:
    if isinstance(tweet_index, bool) or not isinstance(tweet_index, int) or tweet_index < 0:
        raise InvalidRequestError("tweet_index must be a non-negative integer")
    return tweet_index


class MutationGateway:
    """
    Authorization-gated commands over the overlay repository.

    Every command checks the caller before touching storage, performs a
    single record write, then invalidates the overlay store so the next
    resolution picks up the change.

    Example:
        gateway = MutationGateway(store)
        await gateway.delete_tweet(admin, "1234", 2)
    """

    def __init__(self, store: OverlayStore):
        self.store = store
        self.repository = store.repository
        self._log = get_logger("gateway")

    def _authorize(self, check, principal: Principal | None, command: str, **context) -> Principal:
        try:
            return check(principal)
        except (AuthenticationRequiredError, AuthorizationError) as e:
            self._log.warning(
                "mutation_rejected",
                command=command,
                user_id=principal.id if principal else None,
                reason=str(e),
                **context,
            )
            raise

    def _applied(self, command: str, principal: Principal, **context) -> MutationResult:
        self._log.info("mutation_applied", command=command, user_id=principal.id, **context)
        return MutationResult(success=True)

    # Public reads

    async def get_deleted_items(self) -> list[DeletionRecord]:
        """All tombstones; visible to every caller."""
        return await self.repository.list_deletions()

    async def get_tweet_edits(self) -> list[EditRecord]:
        """All tweet edits; visible to every caller."""
        return await self.repository.list_edits()

    # Admin commands

    async def delete_thread(self, principal: Principal | None, thread_id: str) -> MutationResult:
        """Tombstone a thread. Deleting twice is a no-op success."""
        admin = self._authorize(require_admin, principal, "delete_thread", thread_id=thread_id)
        _check_thread_id(thread_id)

        await self.repository.add_thread_deletion(thread_id, deleted_by=admin.id)
        self.store.invalidate()
        return self._applied("delete_thread", admin, thread_id=thread_id)

    async def delete_tweet(
        self, principal: Principal | None, thread_id: str, tweet_index: int
    ) -> MutationResult:
        """Tombstone one tweet by its original index."""
        admin = self._authorize(
            require_admin, principal, "delete_tweet", thread_id=thread_id, tweet_index=tweet_index
        )
        _check_thread_id(thread_id)
        _check_index(tweet_index)

        await self.repository.add_tweet_deletion(thread_id, tweet_index, deleted_by=admin.id)
        self.store.invalidate()
        return self._applied("delete_tweet", admin, thread_id=thread_id, tweet_index=tweet_index)

    async def restore_thread(self, principal: Principal | None, thread_id: str) -> MutationResult:
        admin = self._authorize(require_admin, principal, "restore_thread", thread_id=thread_id)
        _check_thread_id(thread_id)

        await self.repository.remove_thread_deletion(thread_id)
        self.store.invalidate()
        return self._applied("restore_thread", admin, thread_id=thread_id)

    async def restore_tweet(
        self, principal: Principal | None, thread_id: str, tweet_index: int
    ) -> MutationResult:
        admin = self._authorize(
            require_admin, principal, "restore_tweet", thread_id=thread_id, tweet_index=tweet_index
        )
        _check_thread_id(thread_id)
        _check_index(tweet_index)

        await self.repository.remove_tweet_deletion(thread_id, tweet_index)
        self.store.invalidate()
        return self._applied("restore_tweet", admin, thread_id=thread_id, tweet_index=tweet_index)

    async def save_tweet_edit(
        self,
        principal: Principal | None,
        thread_id: str,
        tweet_index: int,
        edited_text: str | None,
        hidden_media: list[str] | None,
    ) -> MutationResult:
        """
        Upsert the edit for one tweet.

        The stored record is replaced wholesale: a None field means the
        original content shows through, not the previous edit's value.
        """
        admin = self._authorize(
            require_admin, principal, "save_tweet_edit", thread_id=thread_id, tweet_index=tweet_index
        )
        _check_thread_id(thread_id)
        _check_index(tweet_index)

        edit = EditRecord(
            thread_id=thread_id,
            tweet_index=tweet_index,
            edited_text=edited_text,
            hidden_media=list(hidden_media) if hidden_media is not None else None,
            edited_by=admin.id,
        )
        await self.repository.upsert_edit(edit)
        self.store.invalidate()
        return self._applied(
            "save_tweet_edit",
            admin,
            thread_id=thread_id,
            tweet_index=tweet_index,
            text_changed=edited_text is not None,
            hidden_media=len(hidden_media or []),
        )

    async def delete_tweet_edit(
        self, principal: Principal | None, thread_id: str, tweet_index: int
    ) -> MutationResult:
        """Drop a tweet's edit, restoring the original content."""
        admin = self._authorize(
            require_admin, principal, "delete_tweet_edit", thread_id=thread_id, tweet_index=tweet_index
        )
        _check_thread_id(thread_id)
        _check_index(tweet_index)

        await self.repository.delete_edit(thread_id, tweet_index)
        self.store.invalidate()
        return self._applied("delete_tweet_edit", admin, thread_id=thread_id, tweet_index=tweet_index)

    # Favorites, scoped to the caller

    async def list_favorites(self, principal: Principal | None) -> list[str]:
        user = self._authorize(require_user, principal, "list_favorites")
        return await self.repository.list_favorites(user.id)

    async def add_favorite(self, principal: Principal | None, thread_id: str) -> MutationResult:
        user = self._authorize(require_user, principal, "add_favorite", thread_id=thread_id)
        _check_thread_id(thread_id)

        await self.repository.add_favorite(user.id, thread_id)
        self.store.invalidate_favorites(user.id)
        return self._applied("add_favorite", user, thread_id=thread_id)

    async def remove_favorite(self, principal: Principal | None, thread_id: str) -> MutationResult:
        user = self._authorize(require_user, principal, "remove_favorite", thread_id=thread_id)
        _check_thread_id(thread_id)

        await self.repository.remove_favorite(user.id, thread_id)
        self.store.invalidate_favorites(user.id)
        return self._applied("remove_favorite", user, thread_id=thread_id)

    async def toggle_favorite(self, principal: Principal | None, thread_id: str) -> bool:
        """
        Flip favorite membership for the caller.

        Returns:
            True if the thread is a favorite after the call
        """
        user = self._authorize(require_user, principal, "toggle_favorite", thread_id=thread_id)
        _check_thread_id(thread_id)

        if await self.repository.is_favorite(user.id, thread_id):
            await self.remove_favorite(user, thread_id)
            return False
        await self.add_favorite(user, thread_id)
        return True
