#!/usr/bin/env python3
"""Enqueue Reddit items for ingestion.

Reads a JSON file holding a single Reddit item (`{"kind": "t1", "data": {...}}`),
a list of items, or a Reddit Listing (e.g. a saved /user/<name>/overview.json),
and enqueues one job per item for the given game and account.

Usage:
    python scripts/enqueue_posts.py --game <game> --account-id <id> items.json

Requires env vars: REDIS_URL
"""

import argparse
import json
import os
import sys

# Add project root to path so devtracker.* imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _load_dotenv():
    """Load .env file into os.environ if it exists."""
    env_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
    if os.path.exists(env_path):
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, value = line.partition("=")
                    os.environ.setdefault(key.strip(), value.strip())

_load_dotenv()


def extract_items(document) -> list:
    """Return the Reddit items held by a file: one item, a list, or a Listing."""
    if isinstance(document, list):
        return [item for item in document if isinstance(item, dict)]
    if isinstance(document, dict):
        if document.get("kind") == "Listing":
            return [item for item in document.get("data", {}).get("children", []) if isinstance(item, dict)]
        return [document]
    return []


def main():
    parser = argparse.ArgumentParser(description="Enqueue Reddit items for ingestion")
    parser.add_argument("input", help="JSON file with a Reddit item, a list of items, or a Listing")
    parser.add_argument("--game", required=True, help="Game identifier the account belongs to")
    parser.add_argument("--account-id", required=True, help="Tracked account ID")
    parser.add_argument("--queue", default=None, help="Queue name (default: $INGEST_QUEUE_NAME or reddit-posts)")
    args = parser.parse_args()

    from devtracker.backend.queue import JobQueue, connect_redis
    from devtracker.backend.utils.errors import QueueUnavailableError
    from devtracker.backend.utils.logging_config import setup_logging

    setup_logging(log_filename="enqueue.log")

    with open(args.input) as f:
        items = extract_items(json.load(f))

    if not items:
        print(f"No Reddit items found in {args.input}")
        sys.exit(1)

    try:
        client = connect_redis(os.environ.get("REDIS_URL"))
    except QueueUnavailableError as e:
        print(f"ERROR: {e}")
        sys.exit(2)

    queue_name = args.queue or os.environ.get("INGEST_QUEUE_NAME") or "reddit-posts"
    queue = JobQueue(client, name=queue_name)

    for item in items:
        job = queue.enqueue({"accountId": args.account_id, "game": args.game, "post": item})
        print(f"  Enqueued job {job.id} ({item.get('kind')} {item.get('data', {}).get('id', '?')})")

    print(f"Enqueued {len(items)} item(s) on '{queue_name}'")


if __name__ == "__main__":
    main()
