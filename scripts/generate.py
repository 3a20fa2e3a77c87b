#!/usr/bin/env python3
"""Run one generation from the command line and print the JSON result.

Usage:
    python scripts/generate.py --topic "New vaccine guidance" --keyword "vaccine guidance" \
        --user-id user-123 --mode news
    python scripts/generate.py --topic "Cold storage" --keyword "cold storage" \
        --user-id user-123 --mode private --humanize off --words 600
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import get_settings
from src.api.errors import OrchestratorError
from src.generation.models import ContentType, GenerationRequest, HumanizeLevel, Mode
from src.observability.logging import configure_logging
from src.workflow.components import create_components
from src.workflow.graph import create_generation_graph, run_generation


async def generate(args: argparse.Namespace) -> int:
    settings = get_settings()
    request = GenerationRequest.from_input(
        topic=args.topic,
        primary_keyword=args.keyword,
        user_id=args.user_id,
        secondary_keyword=args.secondary_keyword,
        mode=args.mode,
        content_type=args.content_type,
        target_word_count=args.words,
        input_body=Path(args.input_file).read_text() if args.input_file else None,
        humanize_level=args.humanize,
    )

    components = create_components(settings)
    try:
        result = await run_generation(create_generation_graph(), components, request)
    except OrchestratorError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1
    finally:
        await components.aclose()

    if args.body_only:
        print(result.full_body)
    else:
        print(result.model_dump_json(indent=2))
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate and validate one piece of content")
    parser.add_argument("--topic", required=True, help="Subject of the content")
    parser.add_argument("--keyword", required=True, help="Primary keyword")
    parser.add_argument("--user-id", required=True, help="Tenant user id")
    parser.add_argument("--secondary-keyword", default=None)
    parser.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.GENERAL.value)
    parser.add_argument(
        "--content-type",
        choices=[c.value for c in ContentType],
        default=ContentType.LONG_ARTICLE.value,
    )
    parser.add_argument("--words", type=int, default=None, help="Target word count")
    parser.add_argument(
        "--humanize",
        choices=[h.value for h in HumanizeLevel],
        default=HumanizeLevel.STANDARD.value,
    )
    parser.add_argument("--input-file", default=None, help="Existing text for revisions")
    parser.add_argument(
        "--body-only", action="store_true", help="Print only the body, even if blocked"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()
    configure_logging(json_output=False, log_level="DEBUG" if args.verbose else "WARNING")
    return asyncio.run(generate(args))


if __name__ == "__main__":
    sys.exit(main())
