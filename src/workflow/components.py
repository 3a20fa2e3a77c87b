"""Collaborators shared by the workflow nodes."""

from __future__ import annotations

from dataclasses import dataclass

from config.settings import Settings
from src.generation.composer import PromptComposer
from src.generation.generator import DraftGenerator
from src.generation.rewriter import DraftRewriter
from src.llm.client import CompletionClient
from src.retrieval.collector import DocumentCollector
from src.retrieval.resolver import EvidenceResolver
from src.retrieval.verifier import EvidenceVerifier
from src.retrieval.web_search import InternetSearcher
from src.store.client import SupabaseStore
from src.validation.swarm import ValidationSwarm
from src.workflow.persistence import ResultRecorder


@dataclass
class PipelineComponents:
    """Everything a generation run talks to, built once per process.

    Passed to the graph through ``config["configurable"]["components"]``
    so tests can swap any collaborator.
    """

    settings: Settings
    store: SupabaseStore
    collector: DocumentCollector
    resolver: EvidenceResolver
    composer: PromptComposer
    generator: DraftGenerator
    rewriter: DraftRewriter
    swarm: ValidationSwarm
    recorder: ResultRecorder
    verifier: EvidenceVerifier
    searcher: InternetSearcher

    async def aclose(self) -> None:
        """Release HTTP clients and wait for background collection tasks."""
        await self.collector.close()
        await self.verifier.close()
        await self.searcher.close()


def create_components(settings: Settings) -> PipelineComponents:
    """Wire the default collaborators from settings.

    Clients connect lazily, so this never performs network I/O.
    """
    store = SupabaseStore()
    verifier = EvidenceVerifier()
    collector = DocumentCollector(endpoint=settings.collector_url)
    searcher = InternetSearcher()
    completions = CompletionClient()

    return PipelineComponents(
        settings=settings,
        store=store,
        collector=collector,
        resolver=EvidenceResolver(store, verifier, collector, searcher),
        composer=PromptComposer(),
        generator=DraftGenerator(completions, settings),
        rewriter=DraftRewriter(completions, settings),
        swarm=ValidationSwarm(completions, settings),
        recorder=ResultRecorder(store),
        verifier=verifier,
        searcher=searcher,
    )
