#!/usr/bin/env python3
"""Run an FAQ search against the live embeddings API and Supabase."""

from __future__ import annotations

import argparse
import asyncio

from coachbot.catalog import get_catalog_optimizer
from coachbot.core import configure_logging, get_health_snapshot, load_runtime_config, render_health_lines
from coachbot.faq import ExpansionPolicy, FAQSearchConfig, FAQSearchService, format_knowledge_context


async def _run(args: argparse.Namespace) -> int:
    runtime = load_runtime_config()
    configure_logging("INFO" if args.verbose else runtime.log_level)

    config = FAQSearchConfig.from_env()
    service = FAQSearchService(config)
    try:
        results = await service.search(args.query, args.limit, policy=args.policy)
    finally:
        await service.close()

    if args.knowledge:
        print(format_knowledge_context(results))
    else:
        for position, result in enumerate(results, start=1):
            print(f"{position}. [{result.similarity:.3f}] {result.question}")
            print(f"   {result.answer[:200]}")
        if not results:
            print("No results.")

    if args.route:
        route = get_catalog_optimizer().route_platform(args.query)
        print(f"\nPlatform: {route.platform} ({route.confidence:.2f}) {route.reasoning}")

    print()
    print("\n".join(render_health_lines(get_health_snapshot(), include_ok=True)))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Search the coaching FAQ knowledge base.")
    parser.add_argument("query", help="Question to search for.")
    parser.add_argument("--limit", type=int, default=5, help="Maximum results to return.")
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in ExpansionPolicy],
        default=None,
        help="Query expansion policy (defaults to FAQ_SEARCH_POLICY or conditional).",
    )
    parser.add_argument(
        "--knowledge",
        action="store_true",
        help="Print the knowledge block as it would be spliced into a prompt.",
    )
    parser.add_argument(
        "--route",
        action="store_true",
        help="Also print the catalog platform routing for the query.",
    )
    parser.add_argument("--verbose", action="store_true", help="Emit INFO logs.")
    args = parser.parse_args()
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
