"""Text helpers shared by providers, ranking and the cache."""

import hashlib
import re
from urllib.parse import urlparse

SNIPPET_MAX_CHARS = 300

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def stable_hash(text: str, length: int = 16) -> str:
    """Deterministic short hex digest of text (sha256 prefix)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def sanitize_snippet(text: str | None, max_chars: int = SNIPPET_MAX_CHARS) -> str:
    """
    Strip HTML tags, collapse whitespace and cap the length of a snippet.

    Args:
        text: Raw snippet (may contain markup)
        max_chars: Maximum length of the returned text

    Returns:
        Cleaned snippet
    """
    if not text:
        return ""
    cleaned = _TAG_RE.sub("", text)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:max_chars]


def extract_domain(url: str | None) -> str:
    """
    Extract the host name of a URL, without a leading "www.".

    Returns "unknown" when the URL has no parseable host.
    """
    if not url:
        return "unknown"
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def tokenize_words(text: str) -> list[str]:
    """Lower-cased whitespace tokens."""
    return (text or "").lower().split()
