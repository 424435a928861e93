"""Unit tests for configuration management."""

from pearlarchive.config import ArchiveConfig, LogFormat, StorageBackend


class TestArchiveConfigDefaults:
    """Test default configuration values."""

    def test_default_corpus_path(self):
        config = ArchiveConfig()
        assert config.corpus_path == "threads.json"

    def test_default_storage_backend(self):
        config = ArchiveConfig()
        assert config.storage_backend == StorageBackend.SQLITE

    def test_default_overlay_ttl(self):
        config = ArchiveConfig()
        assert config.overlay_ttl_seconds == 60

    def test_default_log_format(self):
        config = ArchiveConfig()
        assert config.log_format == LogFormat.CONSOLE

    def test_default_identity_headers(self):
        config = ArchiveConfig()
        assert config.user_id_header == "X-User-Id"
        assert config.user_role_header == "X-User-Role"
        assert config.admin_user_ids == []


class TestArchiveConfigEnvVars:
    """Test configuration from environment variables."""

    def test_corpus_path_from_env(self, monkeypatch):
        monkeypatch.setenv("PEARLARCHIVE_CORPUS_PATH", "/data/threads.json")
        config = ArchiveConfig()
        assert config.corpus_path == "/data/threads.json"

    def test_storage_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("PEARLARCHIVE_STORAGE_BACKEND", "redis")
        config = ArchiveConfig()
        assert config.storage_backend == StorageBackend.REDIS

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("PEARLARCHIVE_LOG_LEVEL", "DEBUG")
        config = ArchiveConfig()
        assert config.log_level == "DEBUG"

    def test_overlay_ttl_from_env(self, monkeypatch):
        monkeypatch.setenv("PEARLARCHIVE_OVERLAY_TTL_SECONDS", "5")
        config = ArchiveConfig()
        assert config.overlay_ttl_seconds == 5

    def test_admin_user_ids_from_env(self, monkeypatch):
        monkeypatch.setenv("PEARLARCHIVE_ADMIN_USER_IDS", '["owner", "editor"]')
        config = ArchiveConfig()
        assert config.admin_user_ids == ["owner", "editor"]

    def test_unprefixed_vars_ignored(self, monkeypatch):
        monkeypatch.setenv("CORPUS_PATH", "elsewhere.json")
        config = ArchiveConfig()
        assert config.corpus_path == "threads.json"


class TestEnums:
    """Test config enum values."""

    def test_storage_backends(self):
        assert StorageBackend.SQLITE.value == "sqlite"
        assert StorageBackend.REDIS.value == "redis"

    def test_log_formats(self):
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"
