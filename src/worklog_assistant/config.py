import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    worklog_index_name: str = os.getenv("WORKLOG_INDEX_NAME", "worklog_vector_index")
    user_key_prefix: str = os.getenv("USER_KEY_PREFIX", "user")
    chat_key_prefix: str = os.getenv("CHAT_KEY_PREFIX", "chat")

    # Embedding
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "http")  # "http" or "local"
    embedding_api_url: str = os.getenv("EMBEDDING_API_URL", "http://localhost:8080/v1/embeddings")
    embedding_api_key: str | None = os.getenv("EMBEDDING_API_KEY")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-large")
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "3072"))
    embedding_timeout: float = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
    # used when EMBEDDING_PROVIDER=local; EMBEDDING_MODEL names an API model
    local_embedding_model: str = os.getenv(
        "LOCAL_EMBEDDING_MODEL", "paraphrase-multilingual-MiniLM-L12-v2"
    )

    # Completion
    completion_api_url: str = os.getenv(
        "COMPLETION_API_URL", "https://inference.do-ai.run/v1/chat/completions"
    )
    model_access_key: str | None = os.getenv("MODEL_ACCESS_KEY")
    completion_model: str = os.getenv("COMPLETION_MODEL", "deepseek-r1-distill-llama-70b")
    completion_timeout: float = float(os.getenv("COMPLETION_TIMEOUT", "20"))
    completion_max_tokens: int = int(os.getenv("COMPLETION_MAX_TOKENS", "1024"))
    completion_temperature: float = float(os.getenv("COMPLETION_TEMPERATURE", "0.75"))
    completion_top_p: float = float(os.getenv("COMPLETION_TOP_P", "0.9"))
    latency_window_size: int = int(os.getenv("LATENCY_WINDOW_SIZE", "100"))

    # Caches
    embedding_cache_ttl: int = int(os.getenv("EMBEDDING_CACHE_TTL", "3600"))  # 1 hour
    search_cache_ttl: int = int(os.getenv("SEARCH_CACHE_TTL", "300"))  # 5 minutes
    fingerprint_dimensions: int = int(os.getenv("FINGERPRINT_DIMENSIONS", "20"))
    fingerprint_precision: int = int(os.getenv("FINGERPRINT_PRECISION", "4"))

    # Retrieval
    search_limit: int = int(os.getenv("SEARCH_LIMIT", "3"))
    search_num_candidates: int = int(os.getenv("SEARCH_NUM_CANDIDATES", "100"))
    content_char_limit: int = int(os.getenv("CONTENT_CHAR_LIMIT", "600"))
    fallback_content_char_limit: int = int(os.getenv("FALLBACK_CONTENT_CHAR_LIMIT", "800"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    @property
    def uses_local_embeddings(self) -> bool:
        """Check if embeddings are produced by a local sentence-transformers model."""
        return self.embedding_provider.lower() == "local"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.embedding_provider.lower() not in ("http", "local"):
            raise ValueError(
                f"EMBEDDING_PROVIDER must be 'http' or 'local', got {self.embedding_provider!r}"
            )

        if self.embedding_cache_ttl <= 0 or self.search_cache_ttl <= 0:
            raise ValueError("EMBEDDING_CACHE_TTL and SEARCH_CACHE_TTL must be positive")

        if self.fingerprint_dimensions < 1:
            raise ValueError("FINGERPRINT_DIMENSIONS must be at least 1")

        if self.completion_timeout <= 0:
            raise ValueError("COMPLETION_TIMEOUT must be positive")

        if self.search_limit < 1:
            raise ValueError("SEARCH_LIMIT must be at least 1")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once at application startup.

    Args:
        level: Log level name. Defaults to settings.log_level.
    """
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
