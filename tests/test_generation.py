"""Unit tests for the generation layer: request, formatting, prompts, drafts, rewrite."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from config.prompts.generation import (
    CITATION_INSTRUCTION_WITHOUT_SOURCES,
    INTERNET_SOURCES_NOTICE,
    LONG_ARTICLE_INSTRUCTION,
    META_TAGS_INSTRUCTION,
    NEWS_WITH_SOURCES_PROMPT,
    NO_SOURCES_NOTICE,
    PRIVATE_SOP_PROMPT,
)
from src.api.errors import GenerationFailedError, InvalidRequestError
from src.generation.composer import INTERNET_SOURCE_LINE, PromptComposer
from src.generation.formatter import (
    NOTICE_HEADING,
    SOURCES_HEADING,
    content_source_notice,
    ensure_notice,
    finalize_body,
    format_sources_list,
    strip_trailing_sources,
)
from src.generation.generator import (
    AUTO_ROUTER_MODEL,
    DraftGenerator,
    attempt_timeout,
    candidate_models,
)
from src.generation.models import (
    ContentType,
    GenerationRequest,
    HumanizeLevel,
    Mode,
    PromptPair,
    normalize_target_word_count,
)
from src.generation.rewriter import DraftRewriter
from src.llm.client import CompletionError
from src.llm.models import UsageEvent, UsageTotals
from src.retrieval.models import Citation, EvidenceSet

# =============================================================================
# Request Normalization
# =============================================================================


class TestGenerationRequest:
    """Tests for GenerationRequest.from_input()."""

    def test_trims_and_defaults(self):
        request = GenerationRequest.from_input(
            topic="  Flu season  ", primary_keyword=" flu shots ", user_id=" u1 "
        )

        assert request.topic == "Flu season"
        assert request.primary_keyword == "flu shots"
        assert request.user_id == "u1"
        assert request.mode == Mode.GENERAL
        assert request.content_type == ContentType.LONG_ARTICLE
        assert request.humanize_level == HumanizeLevel.STANDARD
        assert request.target_word_count is None

    def test_unknown_enum_values_fall_back(self):
        request = GenerationRequest.from_input(
            topic="t", primary_keyword="k", user_id="u",
            mode="blog", content_type="tweet", humanize_level="max",
        )

        assert request.mode == Mode.GENERAL
        assert request.content_type == ContentType.LONG_ARTICLE
        assert request.humanize_level == HumanizeLevel.STANDARD

    def test_enum_values_are_case_insensitive(self):
        request = GenerationRequest.from_input(
            topic="t", primary_keyword="k", user_id="u", mode="NEWS", content_type="PR"
        )

        assert request.mode == Mode.NEWS
        assert request.content_type == ContentType.PRESS_RELEASE

    def test_missing_required_fields(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            GenerationRequest.from_input(topic="  ", primary_keyword=None, user_id="u")

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"missing": ["topic", "keyword"]}

    def test_numbers_read_as_text(self):
        request = GenerationRequest.from_input(topic=2026, primary_keyword="flu", user_id=42)

        assert request.topic == "2026"
        assert request.user_id == "42"
        assert request.query == "2026 flu"

    def test_non_scalar_values_count_as_missing(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            GenerationRequest.from_input(topic=["Flu"], primary_keyword="flu", user_id=True)

        assert exc_info.value.details == {"missing": ["topic", "userId"]}

    def test_keyword_and_query(self):
        request = GenerationRequest.from_input(
            topic="RSV vaccine", primary_keyword="rsv", secondary_keyword="older adults", user_id="u"
        )

        assert request.keyword == "rsv older adults"
        assert request.query == "RSV vaccine rsv older adults"

    def test_long_form_threshold(self):
        short = GenerationRequest.from_input(topic="t", primary_keyword="k", user_id="u", target_word_count=1499)
        long = GenerationRequest.from_input(topic="t", primary_keyword="k", user_id="u", target_word_count=1500)

        assert short.is_long_form is False
        assert long.is_long_form is True

    def test_is_frozen(self, make_request):
        request = make_request()

        with pytest.raises(ValidationError):
            request.topic = "changed"


class TestNormalizeTargetWordCount:
    """Tests for normalize_target_word_count()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (800, 800),
            ("900", 900),
            (812.9, 812),
            (10, 50),
            (5000, 2000),
            (0, None),
            (-20, None),
            ("abc", None),
            (None, None),
            (True, None),
            (float("inf"), None),
        ],
    )
    def test_values(self, value, expected):
        assert normalize_target_word_count(value) == expected


# =============================================================================
# Formatting
# =============================================================================


class TestFormatter:
    """Tests for the sources section and content source notice."""

    def test_sources_list(self, sample_citations):
        citations = sample_citations + [Citation(title="Internal SOP", url="", source="SOP")]

        assert format_sources_list(citations) == (
            "[1] CDC update - https://www.cdc.gov/vaccines/update\n"
            "[2] FDA notice - https://www.fda.gov/news/notice\n"
            "[3] Internal SOP"
        )

    def test_sources_list_empty(self):
        assert format_sources_list([]) == "No sources were retrieved."

    def test_strip_trailing_sources(self):
        text = "Intro paragraph.\n\n## References\n[1] Made up - https://fake.example"

        assert strip_trailing_sources(text) == "Intro paragraph."

    def test_strip_keeps_text_without_sources(self):
        assert strip_trailing_sources("  Just text.  ") == "Just text."

    def test_notice_selection(self):
        assert content_source_notice(False, True) == ""
        assert content_source_notice(True, True) == INTERNET_SOURCES_NOTICE
        assert content_source_notice(True, False) == NO_SOURCES_NOTICE

    def test_finalize_replaces_model_sources(self, sample_citations):
        body = finalize_body("Intro.\n\n## Sources\n[1] Invented", sample_citations)

        assert "Invented" not in body
        assert body.count(SOURCES_HEADING) == 1
        assert body.endswith("[2] FDA notice - https://www.fda.gov/news/notice\n")
        assert NOTICE_HEADING not in body

    def test_finalize_appends_notice(self, sample_citations):
        body = finalize_body("Intro.", sample_citations, INTERNET_SOURCES_NOTICE)

        assert body.count(NOTICE_HEADING) == 1
        assert body.endswith(f"{NOTICE_HEADING}\n{INTERNET_SOURCES_NOTICE}\n")

    def test_finalize_keeps_model_notice_once(self, sample_citations):
        text = "Intro.\n\n## Content Source Notice\nFrom the internet.\n\n## Sources\n[1] x"

        body = finalize_body(text, sample_citations, INTERNET_SOURCES_NOTICE)

        assert body.count(NOTICE_HEADING) == 1
        assert "From the internet." in body
        assert INTERNET_SOURCES_NOTICE not in body

    def test_ensure_notice_removes_duplicates(self):
        body = (
            "Body\n\n## Content Source Notice\nA\n\n## Sources / References\n[1] x\n\n"
            "## Content Source Notice\nB\n"
        )

        result = ensure_notice(body, INTERNET_SOURCES_NOTICE)

        assert result.count(NOTICE_HEADING) == 1
        assert "\nA\n" in result
        assert "\nB" not in result
        assert "[1] x" in result

    @pytest.mark.parametrize("heading", ["# Content Source Notice", "### content source notice"])
    def test_ensure_notice_accepts_other_heading_levels(self, heading):
        body = f"Body\n\n{heading}\nFrom the web.\n\n## Sources / References\n[1] x\n"

        result = ensure_notice(body, INTERNET_SOURCES_NOTICE)

        assert result == body
        assert result.lower().count("content source notice") == 1

    def test_ensure_notice_keeps_first_of_mixed_levels(self):
        body = "Body\n\n# Content Source Notice\nA\n\n## Sources / References\n[1] x\n\n## Content Source Notice\nB\n"

        result = ensure_notice(body, INTERNET_SOURCES_NOTICE)

        assert result.count("Content Source Notice") == 1
        assert "# Content Source Notice\nA" in result
        assert "\nB" not in result
        assert "[1] x" in result

    def test_ensure_notice_noop_without_notice(self):
        assert ensure_notice("Body", "") == "Body"


# =============================================================================
# Prompt Composition
# =============================================================================


class TestPromptComposer:
    """Tests for PromptComposer."""

    def test_news_with_sources(self, make_request, evidence):
        prompts = PromptComposer().compose(make_request(mode="news"), evidence)

        assert prompts.system.startswith(NEWS_WITH_SOURCES_PROMPT)
        assert prompts.system.endswith(LONG_ARTICLE_INSTRUCTION)
        assert "Topic: New vaccine guidance" in prompts.user
        assert "Secondary keyword: None" in prompts.user
        assert "[1] CDC update - https://www.cdc.gov/vaccines/update" in prompts.user
        assert f"Context:\n{evidence.context}" in prompts.user
        assert "Mode:" not in prompts.user

    def test_internet_fallback_adds_notice(self, make_request, internet_evidence):
        prompts = PromptComposer().compose(make_request(), internet_evidence)

        assert INTERNET_SOURCES_NOTICE in prompts.system
        assert INTERNET_SOURCE_LINE in prompts.user
        assert "Mode: general" in prompts.user

    def test_private_mode_prompt(self, make_request, evidence):
        prompts = PromptComposer().compose(make_request(mode="private"), evidence)

        assert prompts.system.startswith(PRIVATE_SOP_PROMPT)
        assert "SOP Context (only source of truth):" in prompts.user

    def test_without_sources(self, make_request):
        empty = EvidenceSet(internet_fallback_used=True, warnings=["none"])

        prompts = PromptComposer().compose(make_request(content_type="meta_tags"), empty)

        assert NO_SOURCES_NOTICE in prompts.system
        assert prompts.system.endswith(META_TAGS_INSTRUCTION)
        assert "Sources:\nNo sources were retrieved." in prompts.user
        assert prompts.user.endswith(CITATION_INSTRUCTION_WITHOUT_SOURCES)

    def test_target_length_and_existing_content(self, make_request, evidence):
        request = make_request(
            target_word_count=800, input_body="Old page copy", content_type="webpage_revision"
        )

        prompts = PromptComposer().compose(request, evidence)

        assert "Target length: ~800 words (do not exceed 800)." in prompts.user
        assert "Existing Content:\nOld page copy" in prompts.user


# =============================================================================
# Draft Generation
# =============================================================================


PROMPTS = PromptPair(system="system prompt", user="user prompt")


class TestCandidateModels:
    """Tests for candidate_models() and attempt_timeout()."""

    def test_default_two_candidates(self, settings):
        assert candidate_models(settings) == ["primary/model", "fallback/model"]

    def test_override_attempts(self, settings):
        settings = settings.model_copy(update={"generation_max_attempts": 3})

        assert candidate_models(settings) == ["primary/model", "fallback/model", AUTO_ROUTER_MODEL]

    def test_dedupes_and_skips_unset(self, settings):
        settings = settings.model_copy(
            update={"ai_text_model_fallback": "primary/model", "generation_max_attempts": 5}
        )

        assert candidate_models(settings) == ["primary/model", AUTO_ROUTER_MODEL]

    def test_timeouts(self, settings, make_request):
        assert attempt_timeout(settings, make_request()) == 35.0
        assert attempt_timeout(settings, make_request(mode="news")) == 30.0
        assert attempt_timeout(settings, make_request(target_word_count=1800)) == 40.0

        override = settings.model_copy(update={"generation_attempt_timeout_ms": 5000})
        assert attempt_timeout(override, make_request()) == 5.0


class TestDraftGenerator:
    """Tests for DraftGenerator."""

    async def test_first_candidate_wins(
        self, settings, make_request, evidence, mock_completion_client, make_completion
    ):
        mock_completion_client.complete.return_value = make_completion("The draft.\n\n## Sources\n[1] x")

        draft = await DraftGenerator(mock_completion_client, settings).generate(
            PROMPTS, make_request(), evidence
        )

        assert draft.model == "primary/model"
        assert draft.attempts == 1
        assert draft.body.startswith("The draft.")
        assert SOURCES_HEADING in draft.body
        assert len(draft.usage) == 1
        kwargs = mock_completion_client.complete.await_args.kwargs
        assert kwargs["system"] == "system prompt"
        assert kwargs["purpose"] == "generate"

    async def test_falls_back_to_next_candidate(
        self, settings, make_request, evidence, mock_completion_client, make_completion
    ):
        mock_completion_client.complete.side_effect = [
            CompletionError("openrouter_http_500: boom"),
            make_completion("Fallback draft."),
        ]

        draft = await DraftGenerator(mock_completion_client, settings).generate(
            PROMPTS, make_request(), evidence
        )

        assert draft.model == "fallback/model"
        assert draft.attempts == 2
        models = [c.kwargs["model"] for c in mock_completion_client.complete.await_args_list]
        assert models == ["primary/model", "fallback/model"]

    async def test_internet_draft_carries_notice(
        self, settings, make_request, internet_evidence, mock_completion_client
    ):
        draft = await DraftGenerator(mock_completion_client, settings).generate(
            PROMPTS, make_request(), internet_evidence
        )

        assert draft.body.count(NOTICE_HEADING) == 1

    async def test_all_candidates_fail(self, settings, make_request, evidence, mock_completion_client):
        mock_completion_client.complete.side_effect = CompletionError("openrouter_empty_response")

        with pytest.raises(GenerationFailedError) as exc_info:
            await DraftGenerator(mock_completion_client, settings).generate(
                PROMPTS, make_request(), evidence
            )

        assert exc_info.value.details == "openrouter_empty_response"
        assert mock_completion_client.complete.await_count == 2

    async def test_empty_reply_usage_is_kept(
        self, settings, make_request, evidence, mock_completion_client, make_completion
    ):
        """Tokens billed for an empty reply still count toward the run."""
        billed = UsageEvent(purpose="generate", model="primary/model", total_tokens=105)
        mock_completion_client.complete.side_effect = [
            CompletionError("openrouter_empty_response", usage=billed),
            make_completion("Body", model="fallback/model", tokens=10),
        ]

        draft = await DraftGenerator(mock_completion_client, settings).generate(
            PROMPTS, make_request(), evidence
        )

        assert [u.model for u in draft.usage] == ["primary/model", "fallback/model"]
        assert UsageTotals.from_events(draft.usage).total_tokens == 125


# =============================================================================
# Rewrite
# =============================================================================


@pytest.fixture
def rewrite_settings(settings):
    return settings.model_copy(update={"humanize_content_model": "rewrite/model"})


def plenty() -> float:
    return 60.0


class TestDraftRewriter:
    """Tests for DraftRewriter."""

    async def test_disabled_without_model(self, settings, make_request, evidence, mock_completion_client):
        outcome = await DraftRewriter(mock_completion_client, settings).rewrite(
            "Body", make_request(), evidence, plenty
        )

        assert outcome.body == "Body"
        assert outcome.humanized is False
        mock_completion_client.complete.assert_not_awaited()

    @pytest.mark.parametrize(
        "overrides",
        [{"humanize_level": "off"}, {"content_type": "meta_tags"}],
    )
    async def test_skipped_by_request(
        self, rewrite_settings, make_request, evidence, mock_completion_client, overrides
    ):
        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(**overrides), evidence, plenty
        )

        assert outcome.humanized is False
        mock_completion_client.complete.assert_not_awaited()

    async def test_skipped_when_budget_low(
        self, rewrite_settings, make_request, evidence, mock_completion_client
    ):
        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(), evidence, lambda: 10.0
        )

        assert outcome.body == "Body"
        mock_completion_client.complete.assert_not_awaited()

    async def test_standard_pass(
        self, rewrite_settings, make_request, evidence, mock_completion_client, make_completion
    ):
        mock_completion_client.complete.return_value = make_completion("Rewritten.", purpose="rewrite_standard")

        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(), evidence, plenty
        )

        assert outcome.humanized is True
        assert outcome.passes == ["rewrite_standard"]
        assert outcome.body.startswith("Rewritten.")
        assert SOURCES_HEADING in outcome.body
        assert len(outcome.usage) == 1
        kwargs = mock_completion_client.complete.await_args.kwargs
        assert kwargs["model"] == "rewrite/model"
        assert "Topic: New vaccine guidance" in kwargs["user"]

    async def test_strong_runs_two_passes(
        self, rewrite_settings, make_request, evidence, mock_completion_client, make_completion
    ):
        mock_completion_client.complete.side_effect = [make_completion("First."), make_completion("Second.")]

        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(humanize_level="strong"), evidence, plenty
        )

        assert outcome.passes == ["rewrite_standard", "rewrite_strong"]
        assert outcome.body.startswith("Second.")
        second_user = mock_completion_client.complete.await_args_list[1].kwargs["user"]
        assert "First." in second_user

    async def test_strong_pass_needs_budget(
        self, rewrite_settings, make_request, evidence, mock_completion_client, make_completion
    ):
        budget = iter([60.0, 5.0])
        mock_completion_client.complete.return_value = make_completion("First.")

        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(humanize_level="strong"), evidence, lambda: next(budget)
        )

        assert outcome.passes == ["rewrite_standard"]
        mock_completion_client.complete.assert_awaited_once()

    async def test_failed_pass_keeps_body(
        self, rewrite_settings, make_request, evidence, mock_completion_client
    ):
        mock_completion_client.complete.side_effect = CompletionError("openrouter_http_502: bad gateway")

        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(), evidence, plenty
        )

        assert outcome.body == "Body"
        assert outcome.humanized is False
        assert outcome.passes == []
        assert outcome.usage == []

    async def test_empty_pass_usage_is_kept(
        self, rewrite_settings, make_request, evidence, mock_completion_client
    ):
        billed = UsageEvent(purpose="rewrite_standard", model="rewrite/model", total_tokens=40)
        mock_completion_client.complete.side_effect = CompletionError(
            "openrouter_empty_response", usage=billed
        )

        outcome = await DraftRewriter(mock_completion_client, rewrite_settings).rewrite(
            "Body", make_request(), evidence, plenty
        )

        assert outcome.body == "Body"
        assert outcome.usage == [billed]
