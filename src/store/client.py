"""Persistence platform client: retrieval function, text search and audit writes.

Wraps the synchronous supabase client; every call runs in a worker thread
so the event loop never blocks on network I/O.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from supabase import Client, create_client

from src.retrieval.urls import escape_like_pattern

logger = structlog.get_logger(__name__)

QUERY_DOCS_FUNCTION = "query-docs"

PUBLIC_DOCUMENTS_TABLE = "documents"
PRIVATE_VECTORS_TABLE = "user_vectors"
GENERATED_CONTENT_TABLE = "generated_content"
AGENT_RESULTS_TABLE = "agent_results"


class StoreError(Exception):
    """Raised when the persistence platform rejects or fails a call."""

    pass


class SupabaseStore:
    """Access to the document index, private vectors and audit tables."""

    def __init__(
        self,
        client: Client | None = None,
        url: str | None = None,
        key: str | None = None,
    ):
        """Initialize the store.

        Args:
            client: supabase Client instance. If None, one is created lazily.
            url: Project URL; defaults to settings.
            key: Service role key; defaults to settings.
        """
        self.client = client
        self.url = url
        self.key = key

    def _ensure_client(self) -> Client:
        """Ensure the supabase client is available."""
        if self.client is None:
            from config.settings import get_settings

            settings = get_settings()
            url = self.url or settings.supabase_url
            key = self.key or (
                settings.supabase_service_role_key.get_secret_value()
                if settings.supabase_service_role_key
                else None
            )
            if not url or not key:
                raise StoreError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
            self.client = create_client(url, key)
        return self.client

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def query_docs(
        self, query: str, mode: str, user_id: str, top_k: int
    ) -> list[dict[str, Any]]:
        """Invoke the semantic retrieval function.

        Args:
            query: Free-text query ("{topic} {keyword}").
            mode: "public" for the document index, "private" for user SOPs.
            user_id: Requesting user.
            top_k: Maximum rows to return.

        Returns:
            Raw rows: ``{title, url, content, source}`` for public mode,
            ``{content, metadata}`` for private mode.

        Raises:
            StoreError: When the function returns an error payload or a
                non-list result.
        """
        client = self._ensure_client()
        body = {"query": query, "mode": mode, "user_id": user_id, "top_k": top_k}
        raw = await asyncio.to_thread(
            client.functions.invoke, QUERY_DOCS_FUNCTION, invoke_options={"body": body}
        )
        payload = self._decode_payload(raw)

        if isinstance(payload, dict) and payload.get("error"):
            raise StoreError(str(payload["error"]))
        if not isinstance(payload, list):
            logger.warning("query_docs_unexpected_payload", mode=mode, payload_type=type(payload).__name__)
            return []
        return [row for row in payload if isinstance(row, dict)]

    @staticmethod
    def _decode_payload(raw: Any) -> Any:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return None
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise StoreError(f"query-docs returned invalid JSON: {text[:200]}") from e
        return raw

    async def search_public_documents(self, query: str, top_k: int = 5) -> list[dict[str, Any]]:
        """Keyword substring search over the public document table, newest first."""
        text = query.strip()
        if not text:
            return []
        pattern = f"%{escape_like_pattern(text)}%"
        client = self._ensure_client()

        def run() -> Any:
            return (
                client.table(PUBLIC_DOCUMENTS_TABLE)
                .select("id,title,url,content,source,date_published")
                .or_(f"title.ilike.{pattern},content.ilike.{pattern}")
                .order("date_published", desc=True)
                .limit(max(1, int(top_k)))
                .execute()
            )

        response = await asyncio.to_thread(run)
        return list(response.data or [])

    async def search_private_chunks(
        self, query: str, user_id: str, top_k: int = 5
    ) -> list[dict[str, Any]]:
        """Keyword substring search over one user's private chunks."""
        text = query.strip()
        if not text:
            return []
        pattern = f"%{escape_like_pattern(text)}%"
        client = self._ensure_client()

        def run() -> Any:
            return (
                client.table(PRIVATE_VECTORS_TABLE)
                .select("content,metadata")
                .eq("user_id", user_id)
                .ilike("content", pattern)
                .limit(max(1, int(top_k)))
                .execute()
            )

        response = await asyncio.to_thread(run)
        return list(response.data or [])

    # =========================================================================
    # Audit writes
    # =========================================================================

    async def insert_generated_content(self, record: dict[str, Any]) -> str | None:
        """Insert one draft record.

        Returns:
            The new row id, or None when the platform returned no row.
        """
        client = self._ensure_client()
        response = await asyncio.to_thread(
            lambda: client.table(GENERATED_CONTENT_TABLE).insert(record).execute()
        )
        rows = response.data or []
        if rows and isinstance(rows[0], dict) and rows[0].get("id") is not None:
            return str(rows[0]["id"])
        return None

    async def insert_agent_results(self, rows: list[dict[str, Any]]) -> None:
        """Insert per-agent audit rows."""
        if not rows:
            return
        client = self._ensure_client()
        await asyncio.to_thread(lambda: client.table(AGENT_RESULTS_TABLE).insert(rows).execute())

    # =========================================================================
    # Health
    # =========================================================================

    def health_check(self) -> bool:
        """Check that the document table answers a trivial query."""
        try:
            client = self._ensure_client()
            client.table(PUBLIC_DOCUMENTS_TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning("store_health_check_failed", error=str(e))
            return False
