#!/usr/bin/env python3
"""
Seed the work log store.

Reads authors and work logs from a JSON file, embeds each work log with
the configured embedding provider and stores it in Redis.

    python scripts/seed_worklogs.py scripts/sample_worklogs.json
    python scripts/seed_worklogs.py data.json --recreate-index

File format:
    {
      "authors": [{"id": "u1", "name": "Alice", "division": "Platform"}],
      "worklogs": [{"id": "w1", "title": "...", "content": "...",
                    "tags": ["db"], "created_at": "2025-10-15T09:00:00",
                    "user_id": "u1"}]
    }
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from worklog_assistant.api.dependencies import create_embedding_provider
from worklog_assistant.config import setup_logging
from worklog_assistant.errors import EmbeddingError
from worklog_assistant.repositories import HttpEmbeddingProvider, RedisWorkLogRepository
from worklog_assistant.services import prepare_text_for_embedding


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def load_data(path: Path) -> dict:
    """Load and minimally validate the seed file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data.get("worklogs"), list):
        raise ValueError(f"{path}: expected a 'worklogs' list")
    data.setdefault("authors", [])
    return data


async def seed(path: Path, recreate_index: bool) -> int:
    """Embed and store every work log in `path`. Returns how many were stored."""
    data = load_data(path)
    provider = create_embedding_provider()
    store = RedisWorkLogRepository.create(dimension=provider.dimension)

    print_section("Index")
    if recreate_index:
        await asyncio.to_thread(store.drop_index, True)
        print("  Dropped existing index and work logs")
    created = await asyncio.to_thread(store.ensure_index)
    print(f"  {'Created' if created else 'Using existing'} index: {store.index_name}")

    print_section("Authors")
    for author in data["authors"]:
        store.upsert_author(author["id"], author["name"], author.get("division"))
        print(f"  Saved {author['name']}")

    print_section("Work logs")
    stored = 0
    for log in data["worklogs"]:
        tags = log.get("tags", [])
        text = prepare_text_for_embedding(log.get("title"), log.get("content"), tags)
        try:
            vector = await provider.encode(text)
        except EmbeddingError as e:
            print(f"  Skipped {log['id']}: {e}")
            continue

        created_at = datetime.fromisoformat(log["created_at"]) if log.get("created_at") else None
        store.add_worklog(
            worklog_id=log["id"],
            title=log.get("title", ""),
            content=log.get("content", ""),
            embedding=vector,
            tags=tags,
            created_at=created_at,
            user_id=log.get("user_id"),
        )
        stored += 1
        print(f"  Stored {log['id']}: {log.get('title', '')[:50]}")

    if isinstance(provider, HttpEmbeddingProvider):
        await provider.close()

    print(f"\nDone: {stored}/{len(data['worklogs'])} work logs stored")
    return stored


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the work log store from a JSON file")
    parser.add_argument("path", type=Path, help="JSON file with authors and worklogs")
    parser.add_argument(
        "--recreate-index",
        action="store_true",
        help="Drop the index and existing work logs first",
    )
    args = parser.parse_args()

    setup_logging()
    stored = asyncio.run(seed(args.path, args.recreate_index))
    return 0 if stored else 1


if __name__ == "__main__":
    sys.exit(main())
