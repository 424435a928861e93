"""Tweet text helpers used by the CLI and exporters."""

import html
import re

URL_RE = re.compile(r"(https?://[^\s]+)")
TCO_RE = re.compile(r"https://t\.co/\w+")
ORDINAL_RE = re.compile(r"^\s*(\d+)/\s*")


def split_ordinal(text: str) -> tuple[int | None, str]:
    """
    Split a leading thread ordinal from tweet text.

    Examples:
        "1/ Intro" -> (1, "Intro")
        "No marker" -> (None, "No marker")
    """
    match = ORDINAL_RE.match(text)
    if not match:
        return None, text
    return int(match.group(1)), text[match.end():]


def extract_urls(text: str) -> list[str]:
    """Return embedded http(s) URLs in order of appearance."""
    return URL_RE.findall(text)


def clean_text(text: str) -> str:
    """Drop t.co media links and decode HTML entities."""
    return html.unescape(TCO_RE.sub("", text)).strip()


def truncate_url(url: str, limit: int = 50) -> str:
    return url if len(url) <= limit else url[:limit] + "..."
