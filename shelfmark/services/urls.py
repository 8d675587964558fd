from __future__ import annotations

import re
from urllib.parse import SplitResult, urlsplit, urlunsplit

ALLOWED_SCHEMES = {"http", "https"}
MAX_TITLE_LENGTH = 500

INVALID_URL_MESSAGE = "Invalid URL. Please include http:// or https://"
INVALID_TITLE_MESSAGE = f"Title must be between 1 and {MAX_TITLE_LENGTH} characters"

_FORBIDDEN_HOST_CHARS = re.compile(r"[\s<>^|\\\"`{}]")


def _split(raw: str | None) -> SplitResult | None:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        parts = urlsplit(text)
        # Accessing .port validates it.
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc or not parts.hostname:
        return None
    if _FORBIDDEN_HOST_CHARS.search(parts.hostname):
        return None
    return parts


def _lower_host(netloc: str) -> str:
    userinfo, sep, hostport = netloc.rpartition("@")
    return f"{userinfo}{sep}{hostport.lower()}"


def is_valid_url(raw: str | None) -> bool:
    parts = _split(raw)
    return parts is not None and parts.scheme.lower() in ALLOWED_SCHEMES


def normalize_url(raw: str) -> str:
    """Lowercase scheme and host, leave everything else as typed.

    Best effort: input that does not parse as an absolute URL comes back
    unchanged.
    """
    parts = _split(raw)
    if parts is None:
        return raw
    scheme = parts.scheme.lower()
    path = parts.path
    if not path and scheme in ALLOWED_SCHEMES:
        path = "/"
    return urlunsplit(
        (scheme, _lower_host(parts.netloc), path, parts.query, parts.fragment)
    )


def validate_title(raw: str | None) -> str | None:
    title = (raw or "").strip()
    if not title or len(title) > MAX_TITLE_LENGTH:
        return None
    return title
