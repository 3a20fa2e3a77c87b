"""URL normalization helpers shared by verification, ranking and scraping."""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

_BARE_DOMAIN = re.compile(r"^[a-z0-9.-]+\.[a-z]{2,}(?:[/?#]|$)", re.IGNORECASE)

_ASSET_EXTENSION = re.compile(
    r"\.(png|jpg|jpeg|gif|webp|svg|ico|css|js|mjs|map|json|pdf|zip|rar|7z|gz"
    r"|mp4|mp3|wav|woff2?|ttf|eot)(\?|#|$)",
    re.IGNORECASE,
)


def normalize_url(raw: str | None) -> str:
    """Normalize a candidate source URL.

    Protocol-relative and scheme-less inputs get ``https://``. Anything that
    is not an http(s) URL with a host normalizes to the empty string.

    Args:
        raw: URL as found in retrieval metadata or HTML.

    Returns:
        Canonical URL string, or "" when the input is not a web URL.
    """
    candidate = (raw or "").strip()
    if not candidate:
        return ""
    if candidate.startswith("//"):
        candidate = f"https:{candidate}"
    if not candidate.startswith(("http://", "https://")):
        if candidate.startswith("www.") or _BARE_DOMAIN.match(candidate):
            candidate = f"https://{candidate}"

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
    except ValueError:
        return ""

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not hostname:
        return ""

    netloc = parts.netloc
    host_start = netloc.rfind("@") + 1
    netloc = netloc[:host_start] + netloc[host_start:].lower()
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, parts.fragment))


def host_source(url: str) -> str:
    """Publisher label for a URL: its host without a leading ``www.``."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        return "Internet"
    return hostname.removeprefix("www.")


def looks_like_asset(url: str) -> bool:
    """True for favicons, images, scripts, archives and other non-article URLs."""
    lower = url.lower()
    if "/favicon" in lower:
        return True
    return bool(_ASSET_EXTENSION.search(lower))


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards so user text matches literally."""
    return value.replace("%", "\\%").replace("_", "\\_")
