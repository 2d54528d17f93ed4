"""Redis implementation of ChatHistoryStore.

Each session is a Redis list of JSON-encoded exchanges, oldest first.
A sorted set indexes session ids by the time of their latest exchange.
"""

import asyncio
import json
import logging
from datetime import datetime

import redis

from worklog_assistant.config import get_redis_client, settings
from worklog_assistant.entities import ConversationExchange
from worklog_assistant.errors import PersistenceError

logger = logging.getLogger(__name__)


def _exchange_to_json(exchange: ConversationExchange) -> str:
    return json.dumps(
        {
            "session_id": exchange.session_id,
            "question": exchange.question,
            "answer": exchange.answer,
            "documents_used": exchange.documents_used,
            "created_at": exchange.created_at.isoformat(),
        }
    )


def _exchange_from_json(raw: bytes | str) -> ConversationExchange:
    data = json.loads(raw)
    return ConversationExchange(
        session_id=data["session_id"],
        question=data["question"],
        answer=data["answer"],
        documents_used=int(data.get("documents_used", 0)),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


class RedisChatRepository:
    """Redis-backed chat history.

    This class satisfies the ChatHistoryStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the chat repository.

        Args:
            redis_client: Redis client instance. If None, creates default.
            key_prefix: Prefix for all chat keys.
        """
        self._client = redis_client if redis_client is not None else get_redis_client()
        self._prefix = key_prefix or settings.chat_key_prefix

    @classmethod
    def create(cls, key_prefix: str | None = None) -> "RedisChatRepository":
        """Factory method to create RedisChatRepository with defaults."""
        return cls(key_prefix=key_prefix)

    @property
    def sessions_key(self) -> str:
        return f"{self._prefix}:sessions"

    def _session_key(self, session_id: str) -> str:
        return f"{self._prefix}:session:{session_id}"

    def _save_sync(self, exchange: ConversationExchange) -> None:
        pipe = self._client.pipeline()
        pipe.rpush(self._session_key(exchange.session_id), _exchange_to_json(exchange))
        pipe.zadd(self.sessions_key, {exchange.session_id: exchange.created_at.timestamp()})
        pipe.execute()

    async def save(self, exchange: ConversationExchange) -> None:
        """Append an exchange to its session.

        Raises:
            PersistenceError: If Redis rejects the write
        """
        try:
            await asyncio.to_thread(self._save_sync, exchange)
        except redis.RedisError as e:
            raise PersistenceError(
                f"Failed to save exchange for session {exchange.session_id}: {e}"
            ) from e

    def _list_session_sync(self, session_id: str) -> list[ConversationExchange]:
        raw_items = self._client.lrange(self._session_key(session_id), 0, -1)
        return [_exchange_from_json(raw) for raw in raw_items]

    async def list_session(self, session_id: str) -> list[ConversationExchange]:
        """Return all exchanges of a session, oldest first."""
        return await asyncio.to_thread(self._list_session_sync, session_id)

    def _list_sessions_sync(self, page: int, limit: int) -> tuple[list[dict], int]:
        total: int = self._client.zcard(self.sessions_key)  # type: ignore[assignment]
        start = (page - 1) * limit
        session_ids = [
            sid.decode() if isinstance(sid, bytes) else sid
            for sid in self._client.zrevrange(self.sessions_key, start, start + limit - 1)
        ]
        if not session_ids:
            return [], total

        pipe = self._client.pipeline()
        for sid in session_ids:
            key = self._session_key(sid)
            pipe.lindex(key, 0)
            pipe.lindex(key, -1)
            pipe.llen(key)
        rows = pipe.execute()

        summaries = []
        for i, sid in enumerate(session_ids):
            first_raw, last_raw, count = rows[i * 3 : i * 3 + 3]
            if first_raw is None or last_raw is None:
                continue
            first = _exchange_from_json(first_raw)
            last = _exchange_from_json(last_raw)
            summaries.append(
                {
                    "session_id": sid,
                    "first_message": first.question,
                    "last_response": last.answer,
                    "message_count": int(count),
                    "created_at": first.created_at,
                    "updated_at": last.created_at,
                }
            )
        return summaries, total

    async def list_sessions(self, page: int, limit: int) -> tuple[list[dict], int]:
        """Return one page of session summaries, most recently updated first."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be at least 1")
        return await asyncio.to_thread(self._list_sessions_sync, page, limit)

    def _delete_session_sync(self, session_id: str) -> int:
        key = self._session_key(session_id)
        pipe = self._client.pipeline()
        pipe.llen(key)
        pipe.delete(key)
        pipe.zrem(self.sessions_key, session_id)
        count, _, _ = pipe.execute()
        return int(count)

    async def delete_session(self, session_id: str) -> int:
        """Delete all exchanges of a session. Returns how many were deleted."""
        deleted = await asyncio.to_thread(self._delete_session_sync, session_id)
        if deleted:
            logger.info("Deleted %d exchanges of session %s", deleted, session_id)
        return deleted
