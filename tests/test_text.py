"""Unit tests for tweet text helpers."""

import pytest

from pearlarchive.core.text import clean_text, extract_urls, split_ordinal, truncate_url


class TestSplitOrdinal:
    """Test thread ordinal detection."""

    @pytest.mark.parametrize("text,expected", [
        ("1/ Intro", (1, "Intro")),
        ("  12/Body", (12, "Body")),
        ("No marker", (None, "No marker")),
        ("Ratio 1/2 is fine", (None, "Ratio 1/2 is fine")),
    ])
    def test_split(self, text, expected):
        assert split_ordinal(text) == expected


class TestCleanText:
    """Test display cleanup."""

    def test_strips_tco_links(self):
        assert clean_text("Look here https://t.co/abc123") == "Look here"

    def test_keeps_other_links(self):
        assert "https://example.org/x" in clean_text("See https://example.org/x")

    def test_unescapes_entities(self):
        assert clean_text("A &amp; B &lt;3") == "A & B <3"


class TestUrls:
    """Test URL helpers."""

    def test_extract_urls_in_order(self):
        text = "a https://one.org b http://two.org/path"
        assert extract_urls(text) == ["https://one.org", "http://two.org/path"]

    def test_truncate_url(self):
        url = "https://example.org/" + "x" * 60
        assert truncate_url(url, 20) == url[:20] + "..."
        assert truncate_url("https://a.b") == "https://a.b"
