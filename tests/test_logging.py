"""Unit tests for structlog configuration."""

import json

import pytest
import structlog

from pearlarchive.config import ArchiveConfig, LogFormat
from pearlarchive.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    clear_request_context()
    structlog.reset_defaults()


def last_json_line(capsys) -> dict:
    lines = capsys.readouterr().out.strip().splitlines()
    return json.loads(lines[-1])


class TestGetLogger:
    """Test the lazy logger proxy."""

    def test_logger_created_before_configure_uses_json(self, capsys):
        log = get_logger("early")
        configure_logging(ArchiveConfig(log_format=LogFormat.JSON))

        log.info("overlay_refreshed", version=3)

        payload = last_json_line(capsys)
        assert payload["event"] == "overlay_refreshed"
        assert payload["logger_name"] == "early"
        assert payload["version"] == 3
        assert payload["level"] == "info"

    def test_level_filter_applies(self, capsys):
        log = get_logger()
        configure_logging(ArchiveConfig(log_format=LogFormat.JSON, log_level="WARNING"))

        log.info("quiet")
        log.warning("loud")

        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out


class TestRequestContext:
    """Test request-scoped context binding."""

    def test_bound_values_reach_log_lines(self, capsys):
        configure_logging(ArchiveConfig(log_format=LogFormat.JSON))
        bind_request_context(request_id="r-1", user_id="user-2")

        get_logger("api").info("request_handled")

        payload = last_json_line(capsys)
        assert payload["request_id"] == "r-1"
        assert payload["user_id"] == "user-2"

    def test_bind_replaces_previous_context(self, capsys):
        configure_logging(ArchiveConfig(log_format=LogFormat.JSON))
        bind_request_context(request_id="r-1", user_id="user-2")
        bind_request_context(request_id="r-2")

        get_logger().info("request_handled")

        payload = last_json_line(capsys)
        assert payload["request_id"] == "r-2"
        assert "user_id" not in payload

    def test_clear_drops_context(self, capsys):
        configure_logging(ArchiveConfig(log_format=LogFormat.JSON))
        bind_request_context(request_id="r-1")
        clear_request_context()

        get_logger().info("request_handled")

        assert "request_id" not in last_json_line(capsys)
