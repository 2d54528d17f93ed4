"""Redis implementation of DocumentStore.

Work logs live in Redis Stack hashes indexed by an HNSW vector index.
A sorted set of creation times backs the recency listing, so the
fallback path keeps working while the vector index is missing.

Layout:
    <index>:<id>          hash: title, content, tags, created_at, user_id, embedding
    <index>:by_created    sorted set: id -> created_at epoch
    user:<id>             hash: name, division
"""

import asyncio
import logging
import struct
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

import redis
from redisvl.index import SearchIndex
from redisvl.query import VectorQuery

from worklog_assistant.config import get_redis_client, settings
from worklog_assistant.entities import WorkLogRecord

logger = logging.getLogger(__name__)

RETURN_FIELDS = ["title", "content", "tags", "created_at", "user_id"]


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _parse_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(tag.strip() for tag in raw.split(",") if tag.strip())


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


class RedisWorkLogRepository:
    """Redis implementation using an HNSW vector index.

    This class satisfies the DocumentStore protocol through structural
    typing - no explicit inheritance needed.

    redis-py is synchronous; every public async method runs its Redis
    work in a worker thread.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        index_name: str | None = None,
        dimension: int | None = None,
        user_key_prefix: str | None = None,
    ) -> None:
        """Initialize the Redis work log repository.

        Args:
            redis_client: Redis client instance. If None, creates default.
            index_name: Name of the Redis search index.
            dimension: Embedding vector dimension.
            user_key_prefix: Key prefix of author hashes.
        """
        self._client = redis_client if redis_client is not None else get_redis_client()
        self._index_name = index_name or settings.worklog_index_name
        self._dimension = dimension or settings.embedding_dimension
        self._user_prefix = user_key_prefix or settings.user_key_prefix
        self._index = SearchIndex.from_dict(self._schema(), redis_client=self._client)

    @classmethod
    def create(
        cls,
        index_name: str | None = None,
        dimension: int | None = None,
    ) -> "RedisWorkLogRepository":
        """Factory method to create RedisWorkLogRepository with defaults."""
        return cls(index_name=index_name, dimension=dimension)

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def recency_key(self) -> str:
        return f"{self._index_name}:by_created"

    def _schema(self) -> dict[str, Any]:
        return {
            "index": {
                "name": self._index_name,
                "prefix": f"{self._index_name}:",
                "storage_type": "hash",
            },
            "fields": [
                {"name": "title", "type": "text"},
                {"name": "content", "type": "text"},
                {"name": "tags", "type": "tag", "attrs": {"separator": ","}},
                {"name": "created_at", "type": "numeric", "attrs": {"sortable": True}},
                {"name": "user_id", "type": "tag"},
                {
                    "name": "embedding",
                    "type": "vector",
                    "attrs": {
                        "dims": self._dimension,
                        "algorithm": "hnsw",
                        "distance_metric": "cosine",
                        "datatype": "float32",
                    },
                },
            ],
        }

    def _doc_key(self, worklog_id: str) -> str:
        return f"{self._index_name}:{worklog_id}"

    def _user_key(self, user_id: str) -> str:
        return f"{self._user_prefix}:{user_id}"

    # Index management

    def ensure_index(self) -> bool:
        """Create the vector index if it does not exist.

        Returns:
            True if a new index was created
        """
        if self._index.exists():
            logger.info("Using existing index: %s", self._index_name)
            return False
        self._index.create(overwrite=False)
        logger.info("Created new index: %s", self._index_name)
        return True

    def drop_index(self, delete_documents: bool = False) -> None:
        """Drop the vector index, optionally deleting the indexed hashes."""
        self._index.delete(drop=delete_documents)
        if delete_documents:
            self._client.delete(self.recency_key)

    # Author join

    def _fetch_authors(self, user_ids: Iterable[str]) -> dict[str, tuple[str | None, str | None]]:
        distinct = [uid for uid in dict.fromkeys(user_ids) if uid]
        if not distinct:
            return {}

        pipe = self._client.pipeline()
        for uid in distinct:
            pipe.hmget(self._user_key(uid), ["name", "division"])
        rows = pipe.execute()

        return {
            uid: (_decode(name), _decode(division))
            for uid, (name, division) in zip(distinct, rows)
        }

    def _to_records(self, rows: list[dict[str, Any]]) -> list[WorkLogRecord]:
        authors = self._fetch_authors(_decode(row.get("user_id")) or "" for row in rows)

        records = []
        for row in rows:
            user_id = _decode(row.get("user_id")) or ""
            author_name, author_division = authors.get(user_id, (None, None))
            score = row.get("score")
            records.append(
                WorkLogRecord(
                    id=row["id"],
                    title=_decode(row.get("title")) or "",
                    content=_decode(row.get("content")) or "",
                    tags=_parse_tags(_decode(row.get("tags"))),
                    created_at=_parse_timestamp(_decode(row.get("created_at"))),
                    author_name=author_name,
                    author_division=author_division,
                    score=score,
                )
            )
        return records

    # Queries

    def _vector_search_sync(
        self,
        vector: Sequence[float],
        num_candidates: int,
        limit: int,
    ) -> list[WorkLogRecord]:
        query = VectorQuery(
            vector=list(vector),
            vector_field_name="embedding",
            return_fields=RETURN_FIELDS,
            num_results=max(limit, num_candidates),
        )
        results = self._index.query(query)

        rows = []
        prefix = f"{self._index_name}:"
        for result in results:
            distance = float(result.get("vector_distance", 2.0))
            row = dict(result)
            row["id"] = str(result.get("id", "")).removeprefix(prefix)
            # cosine distance is in [0, 2]
            row["score"] = 1.0 - distance
            rows.append(row)

        rows.sort(key=lambda r: r["score"], reverse=True)
        return self._to_records(rows[:limit])

    async def vector_search(
        self,
        vector: Sequence[float],
        num_candidates: int,
        limit: int,
    ) -> list[WorkLogRecord]:
        """Find work logs by vector similarity.

        Raises whatever redis/redisvl raise, e.g. when the index is missing.
        """
        return await asyncio.to_thread(self._vector_search_sync, vector, num_candidates, limit)

    def _list_recent_sync(self, limit: int) -> list[WorkLogRecord]:
        if limit <= 0:
            return []

        ids = [_decode(i) or "" for i in self._client.zrevrange(self.recency_key, 0, limit - 1)]
        if not ids:
            return []

        pipe = self._client.pipeline()
        for worklog_id in ids:
            pipe.hmget(self._doc_key(worklog_id), RETURN_FIELDS)
        values = pipe.execute()

        rows = []
        for worklog_id, fields in zip(ids, values):
            if all(v is None for v in fields):
                # hash deleted but still in the recency set
                continue
            row = dict(zip(RETURN_FIELDS, fields))
            row["id"] = worklog_id
            rows.append(row)
        return self._to_records(rows)

    async def list_recent(self, limit: int) -> list[WorkLogRecord]:
        """List the most recently created work logs, newest first."""
        return await asyncio.to_thread(self._list_recent_sync, limit)

    # Writes

    def add_worklog(
        self,
        worklog_id: str,
        title: str,
        content: str,
        embedding: Sequence[float],
        tags: Sequence[str] = (),
        created_at: datetime | None = None,
        user_id: str | None = None,
    ) -> str:
        """Store a work log with its embedding.

        Returns:
            The storage key for the work log
        """
        if len(embedding) != self._dimension:
            raise ValueError(
                f"Embedding has {len(embedding)} dimensions, index expects {self._dimension}"
            )

        # Convert vector to float32 bytes for Redis
        vector_bytes = struct.pack(f"{len(embedding)}f", *embedding)
        timestamp = (created_at or datetime.now(timezone.utc)).timestamp()
        key = self._doc_key(worklog_id)

        pipe = self._client.pipeline()
        pipe.hset(
            key,
            mapping={
                "title": title,
                "content": content,
                "tags": ",".join(tags),
                "created_at": str(timestamp),
                "user_id": user_id or "",
                "embedding": vector_bytes,
            },
        )
        pipe.zadd(self.recency_key, {worklog_id: timestamp})
        pipe.execute()
        return key

    def upsert_author(self, user_id: str, name: str, division: str | None = None) -> None:
        """Create or update an author record."""
        mapping = {"name": name}
        if division:
            mapping["division"] = division
        self._client.hset(self._user_key(user_id), mapping=mapping)

    def delete_worklog(self, worklog_id: str) -> bool:
        """Delete a work log. Returns True if it existed."""
        pipe = self._client.pipeline()
        pipe.delete(self._doc_key(worklog_id))
        pipe.zrem(self.recency_key, worklog_id)
        deleted, _ = pipe.execute()
        return deleted > 0

    def count_all(self) -> int:
        """Count stored work logs."""
        result: int = self._client.zcard(self.recency_key)  # type: ignore[assignment]
        return result

    async def health_check(self) -> bool:
        """Check if Redis is accessible."""
        try:
            return bool(await asyncio.to_thread(self._client.ping))
        except redis.RedisError:
            return False

    def get_stats(self) -> dict:
        """Get repository statistics."""
        return {
            "index_name": self._index_name,
            "index_exists": self._index.exists(),
            "total_worklogs": self.count_all(),
            "dimension": self._dimension,
        }
