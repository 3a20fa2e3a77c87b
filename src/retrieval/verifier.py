"""Citation liveness checks."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from src.retrieval.models import RetrievedDocument, UrlCheck
from src.retrieval.urls import normalize_url

logger = structlog.get_logger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

CHECK_RANGE = "bytes=0-2048"
CHECK_TIMEOUT_SECONDS = 3.0
MAX_CHECKS = 8

# Hosts commonly answer range checks or bot traffic with these codes while
# the page itself exists.
EXISTS_STATUSES = frozenset({401, 403, 405, 429})


def status_means_exists(status: int) -> bool:
    """Liveness policy for a check response status."""
    return 200 <= status < 400 or status in EXISTS_STATUSES


class EvidenceVerifier:
    """Filters citation candidates down to reachable URLs.

    Each URL is normalized, then checked with a ranged GET that follows
    redirects. Network failures and error statuses mark the URL dead.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = CHECK_TIMEOUT_SECONDS,
        max_checks: int = MAX_CHECKS,
    ):
        """Initialize the verifier.

        Args:
            client: Shared httpx client. If None, one is created lazily.
            timeout: Per-check timeout in seconds.
            max_checks: Maximum URLs checked per verification batch.
        """
        self.client = client
        self.timeout = timeout
        self.max_checks = max_checks

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(follow_redirects=True, headers=BROWSER_HEADERS)
        return self.client

    async def check_url(self, url: str) -> UrlCheck:
        """Check one URL.

        Returns:
            UrlCheck with the redirect-resolved URL when the check passed.
        """
        normalized = normalize_url(url)
        if not normalized:
            return UrlCheck(ok=False, url="", status=None)

        client = self._ensure_client()
        try:
            response = await client.get(
                normalized,
                headers={**BROWSER_HEADERS, "Range": CHECK_RANGE},
                follow_redirects=True,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.debug("url_check_failed", url=normalized, error=str(e))
            return UrlCheck(ok=False, url=normalized, status=None)

        final_url = normalize_url(str(response.url)) or normalized
        return UrlCheck(
            ok=status_means_exists(response.status_code),
            url=final_url,
            status=response.status_code,
        )

    async def verify_documents(self, docs: list[RetrievedDocument]) -> list[RetrievedDocument]:
        """Keep only documents whose URL passes a liveness check.

        Only the first ``max_checks`` documents that carry a URL are checked;
        the rest, and documents without a URL, are dropped.

        Args:
            docs: Candidate documents in rank order.

        Returns:
            Verified documents in the original order, URLs redirect-resolved.
        """
        normalized = [doc.model_copy(update={"url": normalize_url(doc.url)}) for doc in docs]
        to_check = [(idx, doc.url) for idx, doc in enumerate(normalized) if doc.url]
        to_check = to_check[: self.max_checks]

        checks = await asyncio.gather(*(self.check_url(url) for _, url in to_check))

        passed: dict[int, str] = {}
        for (idx, _), check in zip(to_check, checks):
            if check.ok:
                passed[idx] = check.url

        verified = [
            doc.model_copy(update={"url": passed[idx]})
            for idx, doc in enumerate(normalized)
            if idx in passed
        ]
        logger.info(
            "urls_verified",
            candidates=len(docs),
            checked=len(to_check),
            verified=len(verified),
        )
        return verified

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
