"""Corpus loader: reads the static threads.json once per session."""

import asyncio
import json
from pathlib import Path
from typing import Any

from pearlarchive.core.resolver import coerce_records
from pearlarchive.exceptions import CorpusLoadError
from pearlarchive.logging import get_logger
from pearlarchive.models.thread import Thread

_log = get_logger("loader")


def parse_corpus(data: Any) -> list[Thread]:
    """
    Validate a decoded corpus.

    Unknown fields are ignored and malformed threads are skipped.

    Args:
        data: Decoded JSON value, expected to be a list of thread objects

    Returns:
        Threads in file order

    Raises:
        CorpusLoadError: If the top level is not a JSON array
    """
    if not isinstance(data, list):
        raise CorpusLoadError(f"Corpus must be a JSON array, got {type(data).__name__}")

    threads = coerce_records(data, Thread, "thread")
    skipped = len(data) - len(threads)
    if skipped:
        _log.warning("corpus_threads_skipped", skipped=skipped, total=len(data))
    return threads


def read_corpus(path: str | Path) -> list[Thread]:
    """Blocking read and parse of a corpus file."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CorpusLoadError(f"Cannot read corpus {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorpusLoadError(f"Corpus {path} is not valid JSON: {e}") from e

    return parse_corpus(data)


async def load_corpus(path: str | Path) -> list[Thread]:
    """
    Load the corpus without blocking the event loop.

    Args:
        path: Path to threads.json

    Returns:
        Validated threads in corpus order

    Raises:
        CorpusLoadError: If the file is missing, unreadable or not an array
    """
    threads = await asyncio.to_thread(read_corpus, path)
    _log.info("corpus_loaded", path=str(path), threads=len(threads))
    return threads
