"""Last-resort internet evidence: search-result scraping and page extraction."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qs, quote_plus, urljoin, urlsplit

import httpx
import structlog
from bs4 import BeautifulSoup

from src.retrieval.models import RetrievedDocument
from src.retrieval.urls import host_source, looks_like_asset, normalize_url
from src.retrieval.verifier import BROWSER_HEADERS

logger = structlog.get_logger(__name__)

SEARCH_URL = "https://duckduckgo.com/html/?q={query}"
SEARCH_REDIRECT_MARKER = "duckduckgo.com/l/"

MAX_DOCS = 5
MIN_PAGE_TEXT_CHARS = 300
MAX_PAGE_TEXT_CHARS = 12000
SEARCH_TIMEOUT_SECONDS = 15.0
PAGE_TIMEOUT_SECONDS = 15.0

_WHITESPACE = re.compile(r"\s+")


def extract_result_urls(html: str) -> list[str]:
    """Pull target URLs out of a DuckDuckGo HTML result page.

    Result links point at ``duckduckgo.com/l/?uddg=<target>``; the decoded
    ``uddg`` parameter is the real destination.

    Returns:
        Unique http(s) target URLs in page order.
    """
    soup = BeautifulSoup(html or "", "lxml")
    seen: list[str] = []
    for link in soup.find_all("a", href=True):
        href = link["href"].strip()
        if not href:
            continue
        if href.startswith("//"):
            href = f"https:{href}"
        elif href.startswith("/"):
            href = urljoin("https://duckduckgo.com", href)
        if SEARCH_REDIRECT_MARKER not in href:
            continue

        targets = parse_qs(urlsplit(href).query).get("uddg", [])
        if not targets:
            continue
        target = targets[0]
        if target.startswith(("http://", "https://")) and target not in seen:
            seen.append(target)
    return seen


def html_to_text(html: str) -> tuple[str, str]:
    """Visible text and <title> of an HTML page."""
    soup = BeautifulSoup(html or "", "lxml")
    title = soup.title.get_text(strip=True) if soup.title else ""
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = _WHITESPACE.sub(" ", soup.get_text(" ")).strip()
    return text, title


def _is_html(content_type: str) -> bool:
    content_type = content_type.lower()
    if not content_type:
        return True
    return "text/html" in content_type or "application/xhtml+xml" in content_type


class InternetSearcher:
    """Search-and-scrape fallback used when no indexed source survives.

    Pages are fetched one at a time; a page that fails, is not HTML, or
    carries too little text is skipped.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_docs: int = MAX_DOCS,
        search_timeout: float = SEARCH_TIMEOUT_SECONDS,
        page_timeout: float = PAGE_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.max_docs = max_docs
        self.search_timeout = search_timeout
        self.page_timeout = page_timeout
        self.log = logger.bind(component=self.__class__.__name__)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(follow_redirects=True, headers=BROWSER_HEADERS)
        return self.client

    async def search(self, query: str) -> list[RetrievedDocument]:
        """Find and scrape up to ``max_docs`` pages for a query.

        Raises:
            httpx.HTTPError: If the search page itself cannot be fetched.
        """
        text = query.strip()
        if not text:
            return []

        client = self._ensure_client()
        response = await client.get(
            SEARCH_URL.format(query=quote_plus(text)),
            headers=BROWSER_HEADERS,
            timeout=self.search_timeout,
        )
        candidates = []
        for url in extract_result_urls(response.text):
            normalized = normalize_url(url)
            if normalized and not looks_like_asset(normalized):
                candidates.append(normalized)
        candidates = candidates[: max(self.max_docs * 4, self.max_docs)]
        self.log.info("internet_search_results", query=text[:80], candidates=len(candidates))

        docs: list[RetrievedDocument] = []
        for url in candidates:
            doc = await self._fetch_document(client, url)
            if doc is None:
                continue
            docs.append(doc)
            if len(docs) >= self.max_docs:
                break

        self.log.info("internet_documents_collected", count=len(docs))
        return docs

    async def _fetch_document(self, client: httpx.AsyncClient, url: str) -> RetrievedDocument | None:
        try:
            response = await client.get(url, headers=BROWSER_HEADERS, timeout=self.page_timeout)
        except httpx.HTTPError as e:
            self.log.debug("internet_page_failed", url=url, error=str(e))
            return None

        if response.is_error:
            return None

        if not _is_html(response.headers.get("content-type", "")):
            return None

        text, title = html_to_text(response.text)
        if len(text) < MIN_PAGE_TEXT_CHARS:
            return None

        return RetrievedDocument(
            title=title or url,
            url=url,
            content=text[:MAX_PAGE_TEXT_CHARS],
            source=host_source(url),
        )

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def __aenter__(self) -> InternetSearcher:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
