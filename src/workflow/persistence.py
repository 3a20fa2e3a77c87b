"""Best-effort persistence of drafts and validation audit rows."""

from __future__ import annotations

import asyncio

import structlog

from src.generation.models import GenerationRequest
from src.retrieval.gateway import error_message
from src.store.client import SupabaseStore
from src.validation.models import AuditRow
from src.workflow.models import GenerationResult

logger = structlog.get_logger(__name__)

DRAFT_INSERT_TIMEOUT_SECONDS = 4.0
AGENT_INSERT_TIMEOUT_SECONDS = 3.5


class ResultRecorder:
    """Writes the draft, then its agent rows keyed by the new draft id.

    Both writes are time-boxed. A failure is logged and never fails the
    request; the caller only learns whether a draft id came back.
    """

    def __init__(
        self,
        store: SupabaseStore,
        draft_timeout: float = DRAFT_INSERT_TIMEOUT_SECONDS,
        agent_timeout: float = AGENT_INSERT_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.draft_timeout = draft_timeout
        self.agent_timeout = agent_timeout

    async def record(
        self,
        request: GenerationRequest,
        result: GenerationResult,
        audit_rows: list[AuditRow],
    ) -> str:
        """Persist one run.

        Returns:
            The new draft id, or "" when the draft was not saved.
        """
        record = {
            "user_id": request.user_id,
            "topic": request.topic,
            "mode": request.mode.value,
            "output_json": result.to_storage(),
            "trust_score": result.trust_score,
            "requires_review": result.requires_review,
        }
        try:
            draft_id = await asyncio.wait_for(
                self.store.insert_generated_content(record), timeout=self.draft_timeout
            )
        except asyncio.TimeoutError:
            logger.error("draft_save_failed", error="generated_content_insert_timeout")
            return ""
        except Exception as e:
            logger.error("draft_save_failed", error=error_message(e))
            return ""

        if not draft_id:
            logger.warning("draft_save_returned_no_id")
            return ""

        rows = [{"draft_id": draft_id, **row.model_dump(mode="json")} for row in audit_rows]
        if rows:
            try:
                await asyncio.wait_for(self.store.insert_agent_results(rows), timeout=self.agent_timeout)
            except asyncio.TimeoutError:
                logger.error("agent_results_save_failed", draft_id=draft_id, error="agent_results_insert_timeout")
            except Exception as e:
                logger.error("agent_results_save_failed", draft_id=draft_id, error=error_message(e))

        logger.info("draft_saved", draft_id=draft_id, agent_rows=len(rows))
        return draft_id
