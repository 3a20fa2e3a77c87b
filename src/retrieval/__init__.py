"""Evidence retrieval: index lookup, verification and fallback sources."""

from .collector import DocumentCollector
from .gateway import GatewayResult, call_with_retry, is_retryable_error
from .models import Citation, CollectResult, EvidenceChunk, EvidenceSet, RetrievedDocument, UrlCheck
from .resolver import EvidenceResolver, rank_documents, score_keyword_match
from .urls import normalize_url
from .verifier import EvidenceVerifier
from .web_search import InternetSearcher

__all__ = [
    # Resolution
    "EvidenceResolver",
    "rank_documents",
    "score_keyword_match",
    # Collaborators
    "DocumentCollector",
    "EvidenceVerifier",
    "InternetSearcher",
    # Retry gateway
    "GatewayResult",
    "call_with_retry",
    "is_retryable_error",
    # Models
    "Citation",
    "CollectResult",
    "EvidenceChunk",
    "EvidenceSet",
    "RetrievedDocument",
    "UrlCheck",
    "normalize_url",
]
