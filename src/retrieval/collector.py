"""Client for the keyword-targeted document collector."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from src.retrieval.models import CollectResult, RetrievedDocument

logger = structlog.get_logger(__name__)

NOTIFY_TIMEOUT_SECONDS = 30.0


class DocumentCollector:
    """Talks to the collector endpoint that ingests fresh documents for a keyword.

    Two call shapes:
    - ``collect``: awaited, asks for the collected documents back.
    - ``notify``: send-and-forget kick-off at request start; its failures
      are logged and never reach the caller.
    """

    def __init__(self, endpoint: str | None = None, client: httpx.AsyncClient | None = None):
        """Initialize the collector client.

        Args:
            endpoint: Collector URL. Defaults to ``{APP_BASE_URL}/api/rag/collect``.
            client: Shared httpx client. If None, one is created lazily.
        """
        if endpoint is None:
            from config.settings import get_settings

            endpoint = get_settings().collector_url
        self.endpoint = endpoint
        self.client = client
        self._background: set[asyncio.Task] = set()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient()
        return self.client

    async def collect(self, keyword: str, timeout: float) -> CollectResult:
        """Ask the collector for documents matching ``keyword``.

        Raises:
            httpx.HTTPError: On transport failure, timeout or non-2xx status.
        """
        client = self._ensure_client()
        response = await client.post(
            self.endpoint,
            json={"keyword": keyword, "returnDocuments": True, "waitForCompletion": False},
            timeout=timeout,
        )
        response.raise_for_status()
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> CollectResult:
        try:
            payload: Any = response.json()
        except ValueError:
            return CollectResult()
        if not isinstance(payload, dict):
            return CollectResult()

        docs_raw = payload.get("documents")
        documents = (
            [RetrievedDocument.from_raw(d) for d in docs_raw] if isinstance(docs_raw, list) else []
        )
        inserted = payload.get("inserted")
        return CollectResult(
            inserted=inserted if isinstance(inserted, int) else 0,
            documents=documents,
        )

    def notify(self, keyword: str) -> asyncio.Task:
        """Kick off background collection for ``keyword`` without waiting.

        The task reference is held until it finishes so it is not garbage
        collected mid-flight.
        """
        task = asyncio.create_task(self._send_notification(keyword))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _send_notification(self, keyword: str) -> None:
        try:
            client = self._ensure_client()
            response = await client.post(
                self.endpoint,
                json={"keyword": keyword, "waitForCompletion": False},
                timeout=NOTIFY_TIMEOUT_SECONDS,
            )
            logger.info("collection_triggered", keyword=keyword, status_code=response.status_code)
        except Exception as e:
            logger.warning("background_collection_skipped", keyword=keyword, error=str(e))

    async def close(self) -> None:
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self.client is not None:
            await self.client.aclose()
            self.client = None
