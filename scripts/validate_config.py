#!/usr/bin/env python3
"""Validate configuration and test collaborator connections.

Usage:
    python scripts/validate_config.py                  # Full validation
    python scripts/validate_config.py --quick          # Settings only (no connection tests)
    python scripts/validate_config.py --service store  # Test specific collaborator
    python scripts/validate_config.py --verbose        # Show masked keys
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def validate_settings() -> tuple[bool, list[str]]:
    """Validate that settings load and that every required value is set.

    Returns:
        Tuple of (success, list of error messages)
    """
    errors = []

    try:
        from config.settings import get_settings

        get_settings.cache_clear()
        settings = get_settings()

        if settings.openrouter_api_key is None or not settings.openrouter_api_key.get_secret_value():
            errors.append("OPENROUTER_API_KEY is empty")
        if not settings.supabase_url:
            errors.append("SUPABASE_URL is empty")
        if settings.supabase_service_role_key is None:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is empty")
        for name in settings.missing_validation_agents(news_mode=True):
            errors.append(f"{name} is empty")

        return len(errors) == 0, errors

    except Exception as e:
        return False, [f"Failed to load settings: {e}"]


def test_store_connection() -> tuple[bool, str]:
    """Test the persistence platform."""
    try:
        from src.store.client import SupabaseStore

        if SupabaseStore().health_check():
            return True, "Supabase reachable"
        return False, "Supabase health check failed"

    except Exception as e:
        return False, f"Supabase connection failed: {e}"


def test_openrouter_key() -> tuple[bool, str]:
    """Test the completion key with a minimal request."""
    try:
        from config.settings import get_settings
        from src.llm.client import CompletionClient

        settings = get_settings()

        async def check() -> str:
            result = await CompletionClient().complete(
                model=settings.ai_text_model,
                system="Reply with the single word ok.",
                user="ok?",
                purpose="config_check",
                temperature=0,
            )
            return result.text

        text = asyncio.run(check())
        return True, f"OpenRouter key valid (model: {settings.ai_text_model}, reply: {text[:20]!r})"

    except Exception as e:
        return False, f"OpenRouter test failed: {e}"


def test_collector_endpoint() -> tuple[bool, str]:
    """Check that the document collector endpoint answers at all."""
    try:
        import httpx

        from config.settings import get_settings

        url = get_settings().collector_url
        response = httpx.options(url, timeout=5.0)
        return True, f"Collector answered {response.status_code} at {url}"

    except Exception as e:
        return False, f"Collector unreachable: {e}"


def mask(value: str) -> str:
    return f"{value[:8]}...{value[-4:] if len(value) > 12 else '****'}"


def print_settings_summary(verbose: bool = False) -> None:
    """Print current settings summary."""
    from config.settings import get_settings

    settings = get_settings()

    print("\n" + "=" * 60)
    print("SETTINGS SUMMARY")
    print("=" * 60)

    print(f"\nEnvironment: {settings.env}")
    print(f"Debug: {settings.debug}")
    print(f"Log Level: {settings.log_level}")

    print(f"\nCompletion Base URL: {settings.ai_text_base_url}")
    print(f"Generation Model: {settings.ai_text_model}")
    print(f"Fallback Model: {settings.ai_text_model_fallback or '(none)'}")
    print(f"Humanize Model: {settings.humanize_content_model or '(disabled)'}")
    for i in range(1, 5):
        model = getattr(settings, f"validation_swarm_agent_{i}")
        print(f"Validation Agent {i}: {model or '(not set)'}")

    print(f"\nSupabase URL: {settings.supabase_url or '(not set)'}")
    print(f"Collector: {settings.collector_url}")

    print(f"\nTrust Threshold: {settings.trust_score_threshold}")
    print(f"Recency Days: {settings.recency_days}")
    print(f"Allowed Domains: {', '.join(settings.allowed_domains)}")
    print(f"Request Budget: {settings.request_budget_seconds}s")
    print(f"Rate Limit: {settings.rate_limit_per_minute}/min")

    if verbose:
        print("\n" + "-" * 60)
        print("API KEYS (masked)")
        print("-" * 60)
        for label, secret in (
            ("OpenRouter", settings.openrouter_api_key),
            ("Supabase", settings.supabase_service_role_key),
        ):
            print(f"{label}: {mask(secret.get_secret_value()) if secret else '(not configured)'}")


SERVICE_TESTS = {
    "store": ("Supabase", test_store_connection),
    "openrouter": ("OpenRouter", test_openrouter_key),
    "collector": ("Collector", test_collector_endpoint),
}


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Validate configuration and test collaborator connections"
    )
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Only validate settings (no connection tests)",
    )
    parser.add_argument(
        "--service",
        choices=sorted(SERVICE_TESTS),
        help="Test specific collaborator only",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show masked API keys",
    )
    parser.add_argument(
        "--skip-api-tests",
        action="store_true",
        help="Skip the OpenRouter completion test (it spends tokens)",
    )

    args = parser.parse_args()

    print("=" * 60)
    print("CONTENT ORCHESTRATOR - CONFIGURATION VALIDATION")
    print("=" * 60)

    all_passed = True

    print("\n[1/2] Validating settings...")
    success, errors = validate_settings()
    if success:
        print("  Settings: OK")
    else:
        print("  Settings: FAILED")
        for error in errors:
            print(f"    - {error}")
        all_passed = False

    print_settings_summary(verbose=args.verbose)

    if not args.quick:
        print("\n[2/2] Testing connections...")

        if args.service:
            keys = [args.service]
        else:
            keys = ["store", "collector"]
            if not args.skip_api_tests:
                keys.append("openrouter")

        for key in keys:
            name, test_func = SERVICE_TESTS[key]
            print(f"\n  Testing {name}...", end=" ")
            success, message = test_func()
            print("OK" if success else "FAILED")
            print(f"    {message}")
            # The collector is optional: generation works without it
            if not success and key != "collector":
                all_passed = False

    print("\n" + "=" * 60)
    print("VALIDATION PASSED" if all_passed else "VALIDATION FAILED")
    print("=" * 60)
    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
