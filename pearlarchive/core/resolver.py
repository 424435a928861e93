"""Apply deletion and edit overlays to the immutable corpus.

Resolution is a pure, total function: malformed overlay or corpus records
are logged and skipped, never raised. Overlay records join tweets on
``Tweet.original_index``, never on list position, so deleting an earlier
tweet cannot shift an edit onto its neighbour.
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pearlarchive.logging import get_logger
from pearlarchive.models.overlay import DeletionRecord, EditRecord
from pearlarchive.models.thread import Thread, Tweet

_log = get_logger("resolver")

ModelT = TypeVar("ModelT", bound=BaseModel)


def require_sequence(value: Any, name: str) -> None:
    """Reject arguments that are not a collection of records."""
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise TypeError(f"{name} must be an iterable of records, got {type(value).__name__}")


def coerce_records(items: Iterable[Any], model: type[ModelT], kind: str) -> list[ModelT]:
    """
    Validate each item as ``model``, dropping the ones that fail.

    Args:
        items: Model instances or raw mappings
        model: Target pydantic model
        kind: Record kind for log context

    Returns:
        Valid records in input order
    """
    records = []
    for position, item in enumerate(items):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            _log.warning(
                "record_skipped",
                kind=kind,
                position=position,
                errors=e.error_count(),
            )
    return records


def partition_deletions(
    deletions: Iterable[DeletionRecord],
) -> tuple[set[str], dict[str, set[int]]]:
    """Split tombstones into deleted thread ids and per-thread tweet indices."""
    deleted_threads: set[str] = set()
    deleted_tweets: dict[str, set[int]] = {}

    for record in deletions:
        if record.is_thread:
            deleted_threads.add(record.thread_id)
        else:
            deleted_tweets.setdefault(record.thread_id, set()).add(record.tweet_index)

    return deleted_threads, deleted_tweets


def index_edits(edits: Iterable[EditRecord]) -> dict[tuple[str, int], EditRecord]:
    """Key edits by (thread_id, tweet_index); later records win."""
    return {edit.key: edit for edit in edits}


def apply_edit(tweet: Tweet, edit: EditRecord | None) -> Tweet:
    """Return the tweet with the edit's text and media suppression applied."""
    if edit is None:
        return tweet

    update: dict[str, Any] = {}
    if edit.edited_text is not None:
        update["text"] = edit.edited_text
    if edit.hidden_media:
        hidden = set(edit.hidden_media)
        update["media"] = [m for m in tweet.media if m.path not in hidden]

    return tweet.model_copy(update=update) if update else tweet


def resolve_thread(
    thread: Thread,
    deleted_indices: set[int],
    edits: Mapping[tuple[str, int], EditRecord],
) -> Thread | None:
    """
    Resolve one thread against its tombstones and edits.

    Returns:
        The effective thread, or None when no tweet survives
    """
    survivors: list[Tweet] = []
    removed_paths: set[str] = set()
    changed = False

    for tweet in thread.tweets:
        if tweet.original_index in deleted_indices:
            removed_paths.update(m.path for m in tweet.media)
            changed = True
            continue

        edited = apply_edit(tweet, edits.get((thread.id, tweet.original_index)))
        if edited is not tweet:
            kept = {m.path for m in edited.media}
            removed_paths.update(m.path for m in tweet.media if m.path not in kept)
            changed = True
        survivors.append(edited)

    if not survivors:
        return None
    if not changed:
        return thread

    still_shown = {m.path for tweet in survivors for m in tweet.media}
    dropped = removed_paths - still_shown

    return thread.model_copy(update={
        "tweets": survivors,
        "tweet_count": len(survivors),
        "media": [m for m in thread.media if m.path not in dropped],
    })


def resolve(
    base_threads: Iterable[Thread],
    deletions: Iterable[DeletionRecord | Mapping],
    edits: Iterable[EditRecord | Mapping],
) -> list[Thread]:
    """
    Produce the effective threads from the corpus and overlay records.

    Args:
        base_threads: Corpus threads in display order
        deletions: Thread or tweet tombstones
        edits: Per-tweet text/media edits

    Returns:
        Effective threads in corpus order, with fully deleted threads removed

    Raises:
        TypeError: If an argument is not a collection of records
    """
    require_sequence(base_threads, "base_threads")
    require_sequence(deletions, "deletions")
    require_sequence(edits, "edits")

    threads = coerce_records(base_threads, Thread, "thread")
    deleted_threads, deleted_tweets = partition_deletions(
        coerce_records(deletions, DeletionRecord, "deletion")
    )
    edit_index = index_edits(coerce_records(edits, EditRecord, "edit"))

    resolved = []
    for thread in threads:
        if thread.id in deleted_threads:
            continue
        effective = resolve_thread(thread, deleted_tweets.get(thread.id, set()), edit_index)
        if effective is not None:
            resolved.append(effective)

    return resolved
