"""Data models for evidence retrieval."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.retrieval.urls import normalize_url

MAX_CONTEXT_CHARS = 8000
MAX_CITATIONS = 10
MAX_RAG_CHUNKS = 8


class Citation(BaseModel):
    """A source shown to the reader and handed to the validators."""

    title: str = Field(default="Source", description="Display title")
    url: str = Field(default="", description="Normalized URL, empty for internal SOP references")
    source: str = Field(default="Unknown", description="Publisher or origin label")


class EvidenceChunk(BaseModel):
    """A retrieved text fragment used as grounding for generation and fact-checking."""

    content: str = Field(default="", description="Chunk text")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Title/url/source metadata")

    @classmethod
    def from_raw(cls, raw: Any) -> EvidenceChunk:
        """Build a chunk from an untyped retrieval row."""
        if not isinstance(raw, dict):
            return cls()
        metadata = raw.get("metadata")
        return cls(
            content=str(raw.get("content") or ""),
            metadata=metadata if isinstance(metadata, dict) else {},
        )


def dedupe_citations(citations: list[Citation]) -> list[Citation]:
    """Drop citations whose normalized URL was already seen, keeping first-seen order.

    Citations without a web URL (internal SOP references) are kept as they are.
    """
    seen: set[str] = set()
    unique: list[Citation] = []
    for citation in citations:
        key = normalize_url(citation.url)
        if key:
            if key in seen:
                continue
            seen.add(key)
        unique.append(citation)
    return unique


def sop_citation(metadata: dict[str, Any]) -> Citation:
    """Citation for a private SOP chunk, from its metadata."""
    title = metadata.get("title")
    url = metadata.get("url")
    return Citation(
        title=title if isinstance(title, str) and title.strip() else "SOP",
        url=url if isinstance(url, str) else "",
        source="SOP",
    )


class RetrievedDocument(BaseModel):
    """A public document from the index, the collector or the internet fallback."""

    title: str = Field(default="Source")
    url: str = Field(default="")
    content: str = Field(default="")
    source: str = Field(default="Unknown")

    @classmethod
    def from_raw(cls, raw: Any) -> RetrievedDocument:
        """Build a document from an untyped row, applying display defaults."""
        if not isinstance(raw, dict):
            return cls()
        return cls(
            title=str(raw.get("title") or "Source"),
            url=str(raw.get("url") or "").strip(),
            content=str(raw.get("content") or ""),
            source=str(raw.get("source") or "Unknown"),
        )

    def to_citation(self) -> Citation:
        return Citation(title=self.title or "Source", url=self.url, source=self.source or "Unknown")

    def to_chunk(self) -> EvidenceChunk:
        return EvidenceChunk(
            content=self.content,
            metadata={"title": self.title or "Source", "url": self.url, "source": self.source},
        )

    def to_context(self) -> str:
        return f"{self.title}\n{self.content}"


class EvidenceSet(BaseModel):
    """Unified evidence produced by the retrieval fallback chain.

    Built incrementally by the resolver, read-only afterwards.
    """

    context: str = Field(default="", description="Concatenated evidence text")
    citations: list[Citation] = Field(default_factory=list, description="Verified citations")
    rag_chunks: list[EvidenceChunk] = Field(
        default_factory=list, description="Chunks handed to the fact-check agent"
    )
    internet_fallback_used: bool = Field(
        default=False, description="Whether evidence came from outside the approved domains"
    )
    warnings: list[str] = Field(default_factory=list, description="User-visible retrieval warnings")
    retrieval_error: str | None = Field(
        default=None, description="Last retrieval service error, if any"
    )

    @property
    def has_sources(self) -> bool:
        return bool(self.citations)

    def bounded(self) -> EvidenceSet:
        """Copy with context, citations and chunks cut to their limits."""
        return self.model_copy(
            update={
                "context": self.context[:MAX_CONTEXT_CHARS],
                "citations": self.citations[:MAX_CITATIONS],
                "rag_chunks": self.rag_chunks[:MAX_RAG_CHUNKS],
            }
        )


class UrlCheck(BaseModel):
    """Outcome of one liveness check."""

    ok: bool
    url: str = ""
    status: int | None = None


class CollectResult(BaseModel):
    """Response of the document collector."""

    inserted: int = 0
    documents: list[RetrievedDocument] = Field(default_factory=list)
