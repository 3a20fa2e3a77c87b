"""Chat-completion client for the OpenAI-compatible completion service."""

from __future__ import annotations

import json
import math
import re
from typing import Any

import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from src.llm.models import CompletionResult, UsageEvent

logger = structlog.get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class CompletionError(Exception):
    """A completion call failed or returned no usable text.

    The message is a short reason (``openrouter_http_503``,
    ``openrouter_empty_response``) that the retry classifier inspects.

    When the service answered but the reply was unusable, ``usage`` holds
    the billed tokens so callers can still account for them.
    """

    def __init__(self, message: str, usage: UsageEvent | None = None):
        super().__init__(message)
        self.message = message
        self.usage = usage


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return max(0, int(value))
    return 0


def _as_cost(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def usage_from_response(purpose: str, model: str, usage: Any) -> UsageEvent:
    """Build a usage event from a response ``usage`` block.

    OpenRouter reports cost as an extra field; any of ``total_cost``,
    ``cost`` or ``total_cost_usd`` is accepted.
    """
    if usage is None:
        data: dict[str, Any] = {}
    elif hasattr(usage, "model_dump"):
        data = usage.model_dump()
    elif isinstance(usage, dict):
        data = usage
    else:
        data = {}

    prompt_tokens = _as_int(data.get("prompt_tokens"))
    completion_tokens = _as_int(data.get("completion_tokens"))
    total_tokens = _as_int(data.get("total_tokens")) or prompt_tokens + completion_tokens

    cost = None
    for key in ("total_cost", "cost", "total_cost_usd"):
        cost = _as_cost(data.get(key))
        if cost is not None:
            break

    return UsageEvent(
        purpose=purpose,
        model=model,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
        cost_usd=cost,
    )


def safe_json_parse(text: str) -> dict[str, Any] | None:
    """Parse a model reply as a JSON object.

    Tries the whole text first, then the outermost ``{...}`` span.

    Returns:
        The parsed object, or None when no JSON object can be recovered.
    """
    if not text:
        return None
    candidates = [text.strip()]
    match = _JSON_OBJECT.search(text)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def usage_from_error(error: BaseException | None) -> UsageEvent | None:
    """Usage billed for a call that still failed, such as an empty reply."""
    if isinstance(error, CompletionError):
        return error.usage
    return None


class CompletionClient:
    """Thin async wrapper over ``chat.completions`` on OpenRouter.

    Timeouts and retries are owned by the caller (the retry gateway);
    this client makes exactly one request per call.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        """Initialize the completion client.

        Args:
            client: AsyncOpenAI instance. If None, one is created lazily.
            api_key: API key; defaults to ``OPENROUTER_API_KEY``.
            base_url: Service base URL; defaults to ``AI_TEXT_BASE_URL``.
        """
        self.client = client
        self.api_key = api_key
        self.base_url = base_url

    def _ensure_client(self) -> AsyncOpenAI:
        """Ensure the AsyncOpenAI client is available."""
        if self.client is None:
            from config.settings import get_settings

            settings = get_settings()
            api_key = self.api_key or (
                settings.openrouter_api_key.get_secret_value()
                if settings.openrouter_api_key
                else None
            )
            if not api_key:
                raise CompletionError("missing_openrouter_key")
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url or settings.ai_text_base_url,
                default_headers={"HTTP-Referer": settings.app_base_url, "X-Title": "Content Orchestrator"},
                max_retries=0,
            )
        return self.client

    async def complete(
        self,
        *,
        model: str,
        system: str,
        user: str,
        purpose: str,
        temperature: float | None = None,
    ) -> CompletionResult:
        """Run one chat completion.

        Args:
            model: Model identifier.
            system: System message.
            user: User message.
            purpose: Accounting label for the usage event.
            temperature: Sampling temperature; service default when None.

        Returns:
            CompletionResult with the trimmed reply text and usage.

        Raises:
            CompletionError: On HTTP errors, connection failures or an
                empty reply.
        """
        client = self._ensure_client()
        params: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await client.chat.completions.create(**params)
        except APIStatusError as e:
            raise CompletionError(f"openrouter_http_{e.status_code}: {e.message}") from e
        except APITimeoutError as e:
            raise CompletionError("openrouter_timeout") from e
        except APIConnectionError as e:
            raise CompletionError(f"openrouter fetch failed: {e}") from e

        usage = usage_from_response(purpose, getattr(response, "model", None) or model, response.usage)
        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()

        logger.debug(
            "completion_finished",
            purpose=purpose,
            model=model,
            total_tokens=usage.total_tokens,
            empty=not text,
        )
        if not text:
            raise CompletionError("openrouter_empty_response", usage=usage)
        return CompletionResult(text=text, usage=usage)
