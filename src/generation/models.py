"""Pydantic models for the generation layer."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.api.errors import InvalidRequestError
from src.llm.models import UsageEvent

MIN_TARGET_WORDS = 50
MAX_TARGET_WORDS = 2000
LONG_FORM_WORDS = 1500


class Mode(str, Enum):
    """Retrieval and prompt mode of a request."""

    NEWS = "news"
    PRIVATE = "private"
    GENERAL = "general"


class ContentType(str, Enum):
    """Output format requested by the caller."""

    LONG_ARTICLE = "long_article"
    SHORT_ARTICLE = "short_article"
    WEB2_ARTICLE = "web2_article"
    PRESS_RELEASE = "pr"
    WEBPAGE_REVISION = "webpage_revision"
    META_TAGS = "meta_tags"
    WEBPAGE_SUMMARY = "webpage_summary"


class HumanizeLevel(str, Enum):
    """Strength of the rewrite pass."""

    OFF = "off"
    STANDARD = "standard"
    STRONG = "strong"


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def normalize_target_word_count(value: Any) -> int | None:
    """Parse a requested word count.

    Positive numbers are floored and clamped to 50-2000; anything else
    (missing, non-numeric, zero, negative) means "no target".
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return min(MAX_TARGET_WORDS, max(MIN_TARGET_WORDS, math.floor(number)))


class GenerationRequest(BaseModel):
    """A normalized, immutable generation request.

    Built once at the API boundary with ``from_input``; every downstream
    stage reads it without mutation.
    """

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., min_length=1)
    primary_keyword: str = Field(..., min_length=1)
    secondary_keyword: str = ""
    mode: Mode = Mode.GENERAL
    content_type: ContentType = ContentType.LONG_ARTICLE
    target_word_count: int | None = Field(default=None, ge=MIN_TARGET_WORDS, le=MAX_TARGET_WORDS)
    input_body: str = ""
    humanize_level: HumanizeLevel = HumanizeLevel.STANDARD
    user_id: str = Field(..., min_length=1)

    @classmethod
    def from_input(
        cls,
        *,
        topic: Any,
        primary_keyword: Any,
        user_id: Any,
        secondary_keyword: Any = None,
        mode: Any = None,
        content_type: Any = None,
        target_word_count: Any = None,
        input_body: Any = None,
        humanize_level: Any = None,
    ) -> GenerationRequest:
        """Normalize raw request values.

        Strings are trimmed and numbers are read as text. Unknown enum
        values fall back to their defaults and the word count is clamped.

        Raises:
            InvalidRequestError: If topic, primary keyword or user id is empty.
        """

        def text(value: Any) -> str:
            if isinstance(value, str):
                return value.strip()
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return str(value)
            return ""

        required = {"topic": text(topic), "keyword": text(primary_keyword), "userId": text(user_id)}
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise InvalidRequestError(
                "Missing required fields: topic, keyword, userId",
                details={"missing": missing},
            )

        return cls(
            topic=required["topic"],
            primary_keyword=required["keyword"],
            secondary_keyword=text(secondary_keyword),
            mode=_coerce_enum(Mode, mode, Mode.GENERAL),
            content_type=_coerce_enum(ContentType, content_type, ContentType.LONG_ARTICLE),
            target_word_count=normalize_target_word_count(target_word_count),
            input_body=text(input_body),
            humanize_level=_coerce_enum(HumanizeLevel, humanize_level, HumanizeLevel.STANDARD),
            user_id=required["userId"],
        )

    @property
    def keyword(self) -> str:
        return " ".join(part for part in (self.primary_keyword, self.secondary_keyword) if part)

    @property
    def query(self) -> str:
        return f"{self.topic} {self.keyword}".strip()

    @property
    def is_long_form(self) -> bool:
        return self.target_word_count is not None and self.target_word_count >= LONG_FORM_WORDS

    @property
    def is_news(self) -> bool:
        return self.mode == Mode.NEWS

    @property
    def is_private(self) -> bool:
        return self.mode == Mode.PRIVATE


class PromptPair(BaseModel):
    """System and user prompts for one generation."""

    system: str
    user: str


class GeneratedDraft(BaseModel):
    """Output of the generation attempter."""

    body: str = Field(..., description="Finalized draft body with sources section")
    model: str = Field(..., description="Candidate model that produced the draft")
    attempts: int = Field(default=1, description="Candidates tried, including the successful one")
    usage: list[UsageEvent] = Field(default_factory=list)


class RewriteOutcome(BaseModel):
    """Output of the rewrite pass."""

    body: str
    humanized: bool = False
    passes: list[str] = Field(default_factory=list, description="Passes that succeeded")
    usage: list[UsageEvent] = Field(default_factory=list)
