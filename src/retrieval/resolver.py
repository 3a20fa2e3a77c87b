"""Evidence resolution: the retrieval fallback chain.

Order per request:

1. Index retrieval through the ``query-docs`` function (private or public).
2. Keyword text search over the same store when the index returned nothing.
3. Secondary boost from the document collector when fewer than three
   citations survived (non-private only).
4. Internet search-and-scrape when there are still no citations
   (non-private only).

Each step's failure is recorded as a warning or ``retrieval_error`` and
the chain continues. Only private mode can fail outright.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.api.errors import NoSourcesError
from src.generation.models import GenerationRequest, Mode
from src.retrieval.collector import DocumentCollector
from src.retrieval.gateway import call_with_retry, error_message
from src.retrieval.models import (
    Citation,
    EvidenceChunk,
    EvidenceSet,
    RetrievedDocument,
    dedupe_citations,
    sop_citation,
)
from src.retrieval.urls import normalize_url
from src.retrieval.verifier import EvidenceVerifier
from src.retrieval.web_search import InternetSearcher
from src.store.client import SupabaseStore

logger = structlog.get_logger(__name__)

QUERY_DOCS_LABEL = "query-docs"
QUERY_DOCS_MAX_ATTEMPTS = 2
QUERY_DOCS_TIMEOUT_NEWS = 18.0
QUERY_DOCS_TIMEOUT = 12.0

PRIMARY_TOP_K = 5
PRIVATE_SUPPLEMENT_TOP_K = 3
TEXT_SEARCH_TOP_K = 5

MIN_CITATIONS_BEFORE_BOOST = 3
BOOST_TOP_N = 5
COLLECT_TIMEOUT_NEWS = 20.0
COLLECT_TIMEOUT = 8.0

MIN_KEYWORD_TOKEN_LENGTH = 4
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

WARN_PRIVATE_TEXT_SEARCH = "Used private text search fallback for retrieval."
WARN_PRIVATE_TEXT_SEARCH_FAILED = "Private text search fallback failed: {error}"
WARN_NO_RECENT_DATA = (
    "No recent data found in universe documents; falling back to internet or text search."
)
WARN_EARLY_DROP = (
    "Retrieval service dropped the request early; used internet or text search fallback."
)
WARN_ALL_LINKS_FAILED = "All retrieved sources failed link validation and were discarded."
WARN_PUBLIC_TEXT_SEARCH = "Used universe text search fallback for retrieval."
WARN_PUBLIC_TEXT_SEARCH_FAILED = "Universe text search fallback failed: {error}"
WARN_INTERNET_USED = "No universe sources found; used internet sources as fallback."
WARN_INTERNET_FAILED = "Internet fallback failed: {error}"
WARN_NO_SOURCES = "No sources could be retrieved; generated a draft without verifiable citations."


def score_keyword_match(text: str, keyword: str) -> int:
    """Count keyword tokens (4+ chars) that occur in ``text``, case-insensitive."""
    haystack = (text or "").lower()
    tokens = [
        t for t in _TOKEN_SPLIT.split((keyword or "").lower()) if len(t) >= MIN_KEYWORD_TOKEN_LENGTH
    ]
    return sum(1 for t in tokens if t in haystack)


def rank_documents(docs: list[RetrievedDocument], keyword: str, top_n: int = BOOST_TOP_N) -> list[RetrievedDocument]:
    """Dedupe by normalized URL, then rank by keyword overlap.

    Documents without a usable URL are dropped. When any document matches
    the keyword, non-matching ones are discarded. Ties keep input order.
    """
    by_url: dict[str, RetrievedDocument] = {}
    for doc in docs:
        url = normalize_url(doc.url)
        if url and url not in by_url:
            by_url[url] = doc.model_copy(update={"url": url})

    scored = [(score_keyword_match(f"{d.title} {d.content}", keyword), d) for d in by_url.values()]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    if scored and scored[0][0] > 0:
        scored = [pair for pair in scored if pair[0] > 0]
    return [doc for _, doc in scored[:top_n]]


@dataclass
class _Evidence:
    """Mutable accumulator used while the chain runs."""

    context: str = ""
    citations: list[Citation] = field(default_factory=list)
    rag_chunks: list[EvidenceChunk] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    retrieval_error: str | None = None
    internet_fallback_used: bool = False
    index_docs: list[RetrievedDocument] = field(default_factory=list)

    def use_documents(self, docs: list[RetrievedDocument]) -> None:
        self.citations = dedupe_citations([d.to_citation() for d in docs])
        self.context = "\n\n".join(d.to_context() for d in docs)
        self.rag_chunks = [d.to_chunk() for d in docs]

    def use_private_rows(self, rows: list[dict[str, Any]]) -> None:
        chunks = [EvidenceChunk.from_raw(row) for row in rows]
        self.context = "\n\n".join(c.content for c in chunks)
        self.citations = dedupe_citations(
            [sop_citation(row["metadata"]) for row in rows if isinstance(row.get("metadata"), dict)]
        )
        self.rag_chunks = chunks

    def freeze(self) -> EvidenceSet:
        return EvidenceSet(
            context=self.context,
            citations=dedupe_citations(self.citations),
            rag_chunks=self.rag_chunks,
            internet_fallback_used=self.internet_fallback_used,
            warnings=self.warnings,
            retrieval_error=self.retrieval_error,
        ).bounded()


class EvidenceResolver:
    """Resolves the evidence set for one generation request."""

    def __init__(
        self,
        store: SupabaseStore,
        verifier: EvidenceVerifier,
        collector: DocumentCollector,
        searcher: InternetSearcher,
    ):
        self.store = store
        self.verifier = verifier
        self.collector = collector
        self.searcher = searcher

    async def resolve(self, request: GenerationRequest) -> EvidenceSet:
        """Run the fallback chain.

        Returns:
            Bounded EvidenceSet. In non-private modes an empty citation list
            is returned with ``internet_fallback_used`` set and a warning.

        Raises:
            NoSourcesError: Private mode resolved no citations.
        """
        log = logger.bind(mode=request.mode.value, user_id=request.user_id)
        evidence = _Evidence()

        try:
            if request.is_private:
                await self._resolve_private(request, evidence)
            else:
                await self._resolve_public(request, evidence)
        except Exception as e:
            evidence.retrieval_error = error_message(e)
            log.error("retrieval_failed", error=evidence.retrieval_error)

        if not request.is_private:
            if len(evidence.citations) < MIN_CITATIONS_BEFORE_BOOST:
                await self._boost_from_collector(request, evidence)
            if not evidence.citations:
                await self._internet_fallback(request, evidence)

        if not evidence.citations:
            if request.is_private:
                log.warning("no_sources_private", retrieval_error=evidence.retrieval_error)
                raise NoSourcesError(retrieval_error=evidence.retrieval_error)
            evidence.internet_fallback_used = True
            evidence.warnings.append(WARN_NO_SOURCES)

        result = evidence.freeze()
        log.info(
            "evidence_resolved",
            citations=len(result.citations),
            chunks=len(result.rag_chunks),
            context_chars=len(result.context),
            internet_fallback_used=result.internet_fallback_used,
            warnings=len(result.warnings),
        )
        return result

    # =========================================================================
    # Index retrieval
    # =========================================================================

    async def _query_docs(self, request: GenerationRequest, mode: str, top_k: int):
        timeout = QUERY_DOCS_TIMEOUT_NEWS if request.is_news else QUERY_DOCS_TIMEOUT
        return await call_with_retry(
            lambda: self.store.query_docs(request.query, mode, request.user_id, top_k),
            label=QUERY_DOCS_LABEL,
            timeout=timeout,
            max_attempts=QUERY_DOCS_MAX_ATTEMPTS,
        )

    async def _resolve_private(self, request: GenerationRequest, evidence: _Evidence) -> None:
        result = await self._query_docs(request, "private", PRIMARY_TOP_K)
        if not result.ok:
            evidence.retrieval_error = result.error
        elif result.value:
            evidence.use_private_rows(result.value)

        if not evidence.context:
            try:
                rows = await self.store.search_private_chunks(
                    request.query, request.user_id, top_k=TEXT_SEARCH_TOP_K
                )
            except Exception as e:
                evidence.warnings.append(WARN_PRIVATE_TEXT_SEARCH_FAILED.format(error=error_message(e)))
            else:
                if rows:
                    evidence.warnings.append(WARN_PRIVATE_TEXT_SEARCH)
                    evidence.use_private_rows(rows)

        if evidence.context and not evidence.citations:
            evidence.citations = [sop_citation({})]

    async def _resolve_public(self, request: GenerationRequest, evidence: _Evidence) -> None:
        result = await self._query_docs(request, "public", PRIMARY_TOP_K)
        if not result.ok:
            evidence.retrieval_error = result.error
            message = result.error or ""
            if "No recent data found" in message:
                evidence.warnings.append(WARN_NO_RECENT_DATA)
            elif "earlydrop" in message.lower():
                evidence.warnings.append(WARN_EARLY_DROP)
        else:
            docs = [RetrievedDocument.from_raw(row) for row in result.value or []]
            evidence.index_docs = docs
            verified = await self.verifier.verify_documents(docs)
            if docs and not verified:
                evidence.warnings.append(WARN_ALL_LINKS_FAILED)
            evidence.use_documents(verified)

            if request.mode == Mode.GENERAL:
                await self._supplement_private(request, evidence)

        if not evidence.context:
            try:
                rows = await self.store.search_public_documents(request.query, top_k=TEXT_SEARCH_TOP_K)
            except Exception as e:
                evidence.warnings.append(WARN_PUBLIC_TEXT_SEARCH_FAILED.format(error=error_message(e)))
            else:
                if rows:
                    evidence.warnings.append(WARN_PUBLIC_TEXT_SEARCH)
                    docs = [RetrievedDocument.from_raw(row) for row in rows]
                    evidence.index_docs = docs
                    evidence.use_documents(await self.verifier.verify_documents(docs))

    async def _supplement_private(self, request: GenerationRequest, evidence: _Evidence) -> None:
        """Append the user's private chunks to the context (not the citations)."""
        result = await self._query_docs(request, "private", PRIVATE_SUPPLEMENT_TOP_K)
        if not result.ok:
            logger.warning("private_supplement_failed", error=result.error)
            return
        chunks = [EvidenceChunk.from_raw(row) for row in result.value or []]
        if not chunks:
            return
        evidence.context += "\n\n" + "\n\n".join(c.content for c in chunks)
        if not evidence.rag_chunks:
            evidence.rag_chunks = chunks

    # =========================================================================
    # Secondary and last-resort sources
    # =========================================================================

    async def _boost_from_collector(self, request: GenerationRequest, evidence: _Evidence) -> None:
        timeout = COLLECT_TIMEOUT_NEWS if request.is_news else COLLECT_TIMEOUT
        try:
            collected = await self.collector.collect(request.keyword, timeout=timeout)
        except Exception as e:
            logger.warning("collector_boost_failed", error=error_message(e))
            return

        merged = rank_documents(evidence.index_docs + collected.documents, request.keyword)
        if not merged:
            return
        verified = await self.verifier.verify_documents(merged)
        if verified:
            evidence.use_documents(verified)
        logger.info(
            "collector_boost_applied",
            collected=len(collected.documents),
            ranked=len(merged),
            verified=len(verified),
        )

    async def _internet_fallback(self, request: GenerationRequest, evidence: _Evidence) -> None:
        try:
            docs = await self.searcher.search(request.query)
        except Exception as e:
            evidence.warnings.append(WARN_INTERNET_FAILED.format(error=error_message(e)))
            return
        if not docs:
            return

        evidence.internet_fallback_used = True
        evidence.warnings.append(WARN_INTERNET_USED)
        evidence.citations = dedupe_citations([d.to_citation() for d in docs])
        internet_context = "\n\n".join(d.to_context() for d in docs)
        evidence.context = (
            f"{internet_context}\n\n{evidence.context}" if evidence.context else internet_context
        )
        evidence.rag_chunks = [d.to_chunk() for d in docs] + evidence.rag_chunks
