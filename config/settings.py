"""Application settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_DOMAINS = ["fda.gov", "nih.gov", "cdc.gov"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are organized into logical groups:
    - Environment: Runtime environment configuration
    - API Keys: Completion service and persistence credentials
    - Models: Generation, rewrite and validation agent models
    - Collaborators: Persistence platform and document collector endpoints
    - Policy: Trust threshold, recency window, allowed public domains
    - Budgets: Request wall-clock budget and generation attempt limits
    - Rate Limits: API rate limiting
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    env: str = "development"
    """Runtime environment: development, staging, or production."""

    debug: bool = True
    """Enable debug mode with verbose logging."""

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    # ==========================================================================
    # API Keys
    # ==========================================================================
    openrouter_api_key: SecretStr | None = None
    """OpenRouter API key. Checked per request so a missing key is reported
    as ``missing_openrouter_key`` rather than failing at startup."""

    supabase_service_role_key: SecretStr | None = None
    """Service role key for the persistence platform."""

    # ==========================================================================
    # Models
    # ==========================================================================
    ai_text_base_url: str = "https://openrouter.ai/api/v1"
    """Base URL of the OpenAI-compatible completion service."""

    ai_text_model: str = "meta-llama/llama-3.1-8b-instruct:free"
    """Primary generation model."""

    ai_text_model_fallback: str | None = None
    """Optional fallback generation model, tried after the primary."""

    humanize_content_model: str | None = None
    """Model for the rewrite pass. Leave empty to disable rewriting."""

    validation_swarm_agent_1: str | None = None
    """Citation agent model (also the recency agent when agent 2 is unset)."""

    validation_swarm_agent_2: str | None = None
    """Recency agent model. Required for news mode."""

    validation_swarm_agent_3: str | None = None
    """Fact-check agent model."""

    validation_swarm_agent_4: str | None = None
    """Tone agent model."""

    # ==========================================================================
    # Collaborators
    # ==========================================================================
    supabase_url: str | None = None
    """Persistence platform URL (tables, text search, query-docs function)."""

    app_base_url: str = "http://localhost:3000"
    """Base URL of the web app hosting the document collector endpoint."""

    # ==========================================================================
    # Policy
    # ==========================================================================
    recency_days: int = 30
    """Sources older than this many days count as stale for the recency agent."""

    trust_score_threshold: int = 80
    """Drafts scoring below this are blocked and held for review."""

    allowed_public_domains: str = ",".join(DEFAULT_ALLOWED_DOMAINS)
    """Approved public domains, comma separated."""

    # ==========================================================================
    # Budgets
    # ==========================================================================
    request_budget_seconds: float = 85.0
    """Wall-clock budget for one generation request."""

    rewrite_min_remaining_seconds: float = 20.0
    """Remaining budget required before each rewrite pass."""

    validation_min_remaining_seconds: float = 15.0
    """Remaining budget required to run the validation swarm."""

    generation_attempt_timeout_ms: int | None = None
    """Override for the per-candidate generation timeout."""

    generation_max_attempts: int | None = None
    """Override for the number of generation candidates to try."""

    # ==========================================================================
    # Rate Limits
    # ==========================================================================
    rate_limit_per_minute: int = 60
    """API rate limit per minute per client."""

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"env must be one of {allowed}, got '{v}'")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got '{v}'")
        return v.upper()

    @field_validator("trust_score_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        """Validate threshold is a possible trust score."""
        if not 0 <= v <= 100:
            raise ValueError(f"trust_score_threshold must be between 0 and 100, got {v}")
        return v

    @field_validator("generation_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int | None) -> int | None:
        """At least one candidate must be tried."""
        if v is not None and v < 1:
            raise ValueError(f"generation_max_attempts must be >= 1, got {v}")
        return v

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.env == "development"

    @property
    def allowed_domains(self) -> list[str]:
        """Allowed public domains as bare lower-case hosts."""
        domains: list[str] = []
        for item in self.allowed_public_domains.split(","):
            host = item.strip().lower()
            host = host.removeprefix("https://").removeprefix("http://")
            host = host.split("/")[0].removeprefix("www.")
            if host and host not in domains:
                domains.append(host)
        return domains or list(DEFAULT_ALLOWED_DOMAINS)

    @property
    def collector_url(self) -> str:
        """Document collector endpoint."""
        return f"{self.app_base_url.rstrip('/')}/api/rag/collect"

    def missing_validation_agents(self, news_mode: bool) -> list[str]:
        """Names of unset validation agent variables for the given mode."""
        required = {
            "VALIDATION_SWARM_AGENT_1": self.validation_swarm_agent_1,
            "VALIDATION_SWARM_AGENT_3": self.validation_swarm_agent_3,
            "VALIDATION_SWARM_AGENT_4": self.validation_swarm_agent_4,
        }
        if news_mode:
            required["VALIDATION_SWARM_AGENT_2"] = self.validation_swarm_agent_2
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the application.
    To reload settings, call `get_settings.cache_clear()` first.
    """
    return Settings()
