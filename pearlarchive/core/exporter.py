"""Export utilities for archive views and threads."""

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pearlarchive.core.loader import read_corpus
from pearlarchive.core.text import clean_text, extract_urls
from pearlarchive.models.thread import Thread
from pearlarchive.models.view import ArchiveView

if TYPE_CHECKING:
    import pandas as pd

try:
    import pandas as pd
    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False


def to_dict(view: ArchiveView) -> dict:
    """
    Convert an ArchiveView to a JSON-compatible dictionary.

    Args:
        view: ArchiveView to convert

    Returns:
        Dictionary representation
    """
    return view.model_dump(mode="json")


def to_json(view: ArchiveView, indent: int = 2) -> str:
    """
    Convert an ArchiveView to a JSON string.

    Args:
        view: ArchiveView to serialize
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return view.model_dump_json(indent=indent)


def threads_to_json(threads: list[Thread], indent: int = 2) -> str:
    """Serialize threads as a corpus-compatible JSON array."""
    return json.dumps(
        [t.model_dump(mode="json", exclude_none=True) for t in threads],
        indent=indent,
        ensure_ascii=False,
    )


def save_json(
    threads: list[Thread],
    filepath: str | Path,
    indent: int = 2,
) -> Path:
    """
    Save threads to a JSON file that the corpus loader can read back.

    Args:
        threads: Threads to save
        filepath: Output file path
        indent: JSON indentation level

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(threads_to_json(threads, indent), encoding="utf-8")
    return path


def load_threads_json(filepath: str | Path) -> list[Thread]:
    """
    Load threads previously written by save_json.

    Args:
        filepath: Path to JSON file

    Returns:
        Validated threads; original tweet indices are preserved

    Raises:
        CorpusLoadError: If the file is missing or not a JSON array
    """
    return read_corpus(filepath)


def export_summary(view: ArchiveView) -> dict:
    """
    Flatten a view into an export-friendly dict with metadata.

    Args:
        view: ArchiveView to summarize

    Returns:
        Dict with counts, facets and thread ids in display order
    """
    return {
        "exported_at": datetime.now().isoformat(),
        "threads_count": len(view.threads),
        "tweets_count": sum(t.tweet_count for t in view.threads),
        "overlay_version": view.overlay_version,
        "categories": view.facets.categories,
        "years": view.facets.years,
        "thread_ids": [t.id for t in view.threads],
    }


def _check_pandas():
    """Raise ImportError if pandas is not available."""
    if not PANDAS_AVAILABLE:
        raise ImportError(
            "pandas is required for DataFrame export. Install with: pip install pandas"
        )


def to_threads_df(threads: list[Thread]) -> "pd.DataFrame":
    """
    Convert threads to a pandas DataFrame, one row per thread.

    Raises:
        ImportError: If pandas is not installed
    """
    _check_pandas()

    rows = [
        {
            "id": t.id,
            "type": t.type,
            "date": t.date,
            "year": t.year,
            "tweet_count": t.tweet_count,
            "is_pearl": t.is_pearl,
            "categories": "|".join(t.categories),
            "media_count": len(t.media),
            "has_answer": t.answer is not None,
        }
        for t in threads
    ]
    return pd.DataFrame(rows)


def to_tweets_df(threads: list[Thread]) -> "pd.DataFrame":
    """
    Convert tweets to a pandas DataFrame, one row per surviving tweet.

    Rows carry the tweet's original index so they can be joined back to
    overlay records.

    Raises:
        ImportError: If pandas is not installed
    """
    _check_pandas()

    rows = []
    for thread in threads:
        for position, tweet in enumerate(thread.tweets):
            rows.append({
                "thread_id": thread.id,
                "position": position,
                "original_index": tweet.original_index,
                "ordinal": tweet.ordinal,
                "date": tweet.date,
                "text": clean_text(tweet.text),
                "urls": " ".join(extract_urls(tweet.text)),
                "media_paths": "|".join(m.path for m in tweet.media),
            })
    return pd.DataFrame(rows)


def save_csv(
    threads: list[Thread],
    filepath: str | Path,
    tweets: bool = True,
) -> Path:
    """
    Save threads to a CSV file.

    Args:
        threads: Threads to save
        filepath: Output file path
        tweets: If True, one row per tweet; if False, one row per thread

    Returns:
        Path to saved file

    Raises:
        ImportError: If pandas is not installed
    """
    _check_pandas()

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = to_tweets_df(threads) if tweets else to_threads_df(threads)
    df.to_csv(path, index=False)
    return path
