"""Shared fixtures - local JSON corpus and temporary SQLite storage, no network."""

import json
from pathlib import Path

import pytest

from pearlarchive.config import ArchiveConfig, StorageBackend
from pearlarchive.core.loader import read_corpus
from pearlarchive.models.principal import Principal, Role
from pearlarchive.models.thread import Thread

FIXTURES_DIR = Path(__file__).parent / "fixtures"
CORPUS_PATH = FIXTURES_DIR / "threads.json"


def make_thread(
    thread_id: str = "T1",
    texts: list[str] | None = None,
    media: dict[int, list[dict]] | None = None,
    **fields,
) -> Thread:
    """Build a thread with one tweet per text; media maps tweet index to media rows."""
    texts = texts if texts is not None else ["first", "second", "third"]
    media = media or {}
    data = {
        "id": thread_id,
        "date": "2023-01-01T00:00:00Z",
        "categories": [],
        "tweets": [{"text": text, "media": media.get(i, [])} for i, text in enumerate(texts)],
    }
    data.update(fields)
    return Thread.model_validate(data)


@pytest.fixture
def thread_factory():
    return make_thread


@pytest.fixture
def corpus() -> list[Thread]:
    """Validated threads from the fixture corpus."""
    return read_corpus(CORPUS_PATH)


@pytest.fixture
def raw_corpus() -> list[dict]:
    return json.loads(CORPUS_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def config(tmp_path) -> ArchiveConfig:
    """Config pointing at the fixture corpus and a temporary database."""
    return ArchiveConfig(
        corpus_path=str(CORPUS_PATH),
        storage_backend=StorageBackend.SQLITE,
        sqlite_path=str(tmp_path / "overlay.db"),
        overlay_ttl_seconds=60,
        admin_user_ids=["owner"],
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def user() -> Principal:
    return Principal(id="user-2", role=Role.USER)
