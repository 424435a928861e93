"""Display ordering: corpus order, newest first, or a per-session shuffle."""

import random
from datetime import datetime, timezone
from enum import Enum

from pearlarchive.models.principal import Role
from pearlarchive.models.thread import Thread


class SortMode(str, Enum):
    """Display order for the visible threads."""
    CORPUS = "corpus"
    NEWEST = "newest"
    RANDOM = "random"


def parse_thread_date(date_str: str | None) -> datetime | None:
    """
    Parse a corpus date string.

    Accepts ISO 8601 timestamps (with or without a trailing Z) and plain
    YYYY-MM-DD dates. Returns None for anything else.
    """
    if not date_str:
        return None

    date_str = date_str.strip()
    try:
        parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        return None

    # Compare naive and aware values on the same footing
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sort_newest(threads: list[Thread]) -> list[Thread]:
    """Newest first; undated threads keep corpus order at the end."""
    dated = [(parse_thread_date(t.date), t) for t in threads]
    with_date = [pair for pair in dated if pair[0] is not None]
    without_date = [t for d, t in dated if d is None]
    with_date.sort(key=lambda pair: pair[0], reverse=True)
    return [t for _, t in with_date] + without_date


class SessionOrdering:
    """
    Shuffle permutation generated once per browsing session.

    The permutation is built over the effective thread ids the first time it
    is needed and reused by every later call, so re-filtering never changes
    the relative order of threads. It is regenerated only by ``reshuffle()``
    or when ``observe_role()`` sees a different role.

    Example:
        ordering = SessionOrdering(seed=7)
        shuffled = ordering.apply(visible, effective)
    """

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)
        self._rank: dict[str, int] | None = None
        self._role: Role | None = None
        self.generation = 0

    @property
    def is_generated(self) -> bool:
        return self._rank is not None

    def generate(self, threads: list[Thread]) -> None:
        """Build a fresh Fisher-Yates permutation over the given threads."""
        ids = [t.id for t in threads]
        self._rng.shuffle(ids)
        self._rank = {thread_id: rank for rank, thread_id in enumerate(ids)}
        self.generation += 1

    def reshuffle(self) -> None:
        """Discard the permutation; the next ``apply`` builds a new one."""
        self._rank = None

    def observe_role(self, role: Role | None) -> bool:
        """
        Record the caller's role, reshuffling if it changed.

        Returns:
            True if the permutation was discarded
        """
        if role == self._role:
            return False
        previous, self._role = self._role, role
        if previous is None and not self.is_generated:
            return False
        self.reshuffle()
        return True

    def apply(self, visible: list[Thread], effective: list[Thread] | None = None) -> list[Thread]:
        """
        Order visible threads by the session permutation.

        Args:
            visible: Filtered threads to order
            effective: Full effective set used when the permutation is built

        Returns:
            Shuffled threads; ids unknown to the permutation follow in corpus order
        """
        if self._rank is None:
            self.generate(effective if effective is not None else visible)

        rank = self._rank
        known = [t for t in visible if t.id in rank]
        unknown = [t for t in visible if t.id not in rank]
        known.sort(key=lambda t: rank[t.id])
        return known + unknown


def order_threads(
    threads: list[Thread],
    mode: SortMode = SortMode.CORPUS,
    ordering: SessionOrdering | None = None,
    effective: list[Thread] | None = None,
) -> list[Thread]:
    """Apply a sort mode to already-filtered threads."""
    if mode == SortMode.NEWEST:
        return sort_newest(threads)
    if mode == SortMode.RANDOM:
        ordering = ordering or SessionOrdering()
        return ordering.apply(threads, effective)
    return list(threads)
