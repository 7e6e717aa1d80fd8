"""Run a match batch from the command line and print the ranking.

Usage:
    python -m scripts.run_matches --type project --id <project_id> --as <user_id>
    python -m scripts.run_matches --type profile --id current --as <user_id>
    python -m scripts.run_matches --type profile --id current --as <user_id> --concurrency 4
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import redis.asyncio as aioredis

from app.config import settings
from app.errors import FounderMatchError
from app.llm import build_model_client
from app.matching import run_matches
from app.state import StateManager


async def run(args: argparse.Namespace) -> int:
    r = aioredis.from_url(settings.redis_url, decode_responses=True)
    store = StateManager(r)
    client = build_model_client(args.provider)

    try:
        caller = await store.get_user(args.caller)
        matches = await run_matches(
            args.type,
            args.id,
            caller,
            store,
            client,
            limit=args.limit,
            concurrency=args.concurrency,
        )
    except FounderMatchError as e:
        print(f"Error ({e.status_code}): {e.message}")
        return 1
    finally:
        await client.aclose()
        await r.aclose()

    print(f"{len(matches)} matches for {args.type} {args.id} (provider: {client.name})")
    for rank, m in enumerate(matches, start=1):
        label = m.sector or m.title or ""
        flag = "  [fallback]" if m.status == "failed" else ""
        print(f"  {rank:>2}. {m.score:>3}  {m.name} ({label}){flag}")
        print(f"        {m.reason}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run a match batch for one pivot")
    parser.add_argument("--type", required=True, choices=["project", "profile"])
    parser.add_argument("--id", required=True, help='Project id, user id, or "current"')
    parser.add_argument("--as", dest="caller", required=True, help="User id to run as")
    parser.add_argument("--limit", type=int, default=None, help="Candidate pool size")
    parser.add_argument("--concurrency", type=int, default=None, help="Model calls in flight")
    parser.add_argument(
        "--provider",
        choices=["claude", "ollama", "none"],
        default=None,
        help="Override settings.llm_provider",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
