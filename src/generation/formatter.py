"""Body formatting: canonical sources section and content source notice."""

from __future__ import annotations

import re

from config.prompts.generation import INTERNET_SOURCES_NOTICE, NO_SOURCES_NOTICE
from src.retrieval.models import Citation

SOURCES_HEADING = "## Sources / References"
NOTICE_HEADING = "## Content Source Notice"
NO_SOURCES_LINE = "No sources were retrieved."

_TRAILING_SOURCES = re.compile(
    r"\n##\s*(Sources\s*/\s*References|Sources|References)\s*[\r\n]", re.IGNORECASE
)
_NOTICE = re.compile(r"#{1,3}\s*Content Source Notice\b", re.IGNORECASE)
_NEXT_HEADING = re.compile(r"\n#{1,3}\s")


def format_sources_list(citations: list[Citation]) -> str:
    """Numbered source lines: ``[i] title - url`` or ``[i] title``, 1-indexed.

    Args:
        citations: Verified citations in display order.

    Returns:
        One line per citation, or the no-sources line when empty.
    """
    lines = []
    for i, citation in enumerate(citations, start=1):
        title = (citation.title or "").strip() or "Source"
        url = (citation.url or "").strip()
        lines.append(f"[{i}] {title} - {url}" if url else f"[{i}] {title}")
    return "\n".join(lines) or NO_SOURCES_LINE


def format_sources_section(citations: list[Citation]) -> str:
    return f"\n\n{SOURCES_HEADING}\n{format_sources_list(citations)}\n"


def strip_trailing_sources(text: str) -> str:
    """Drop a model-written sources section (first such heading to end)."""
    match = _TRAILING_SOURCES.search(text)
    if match is None:
        return text.strip()
    return text[: match.start()].strip()


def content_source_notice(internet_fallback_used: bool, has_sources: bool) -> str:
    """Disclosure text for drafts not grounded in the approved universe.

    Returns:
        The notice, or "" when no disclosure is needed.
    """
    if not internet_fallback_used:
        return ""
    return INTERNET_SOURCES_NOTICE if has_sources else NO_SOURCES_NOTICE


def ensure_notice(body: str, notice: str) -> str:
    """Make the notice section appear exactly once when a notice is required.

    Appends the section when missing; when the model repeated it, later
    copies are removed up to the next heading.
    """
    if not notice:
        return body

    matches = list(_NOTICE.finditer(body))
    if not matches:
        return f"{body}\n\n{NOTICE_HEADING}\n{notice}\n"

    for match in reversed(matches[1:]):
        start = match.start()
        following = _NEXT_HEADING.search(body, match.end())
        end = following.start() if following else len(body)
        body = body[:start].rstrip("\n") + ("\n" + body[end:] if following else "\n")
    return body


def finalize_body(text: str, citations: list[Citation], notice: str = "") -> str:
    """Canonical draft body: model text, rendered sources, notice when required."""
    body = strip_trailing_sources(text) + format_sources_section(citations)
    return ensure_notice(body, notice)
