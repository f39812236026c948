"""Service configuration loaded from environment variables."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables.

    Attributes:
        host: Bind address for the API server.
        port: Port number for the API server.
        debug: Enable debug logging and API documentation.
        index_path: SQLite database path for the search index.
        index_timeout: Seconds allowed for a single index store call.
        redis_url: Connection URL of the cache backend.
        cache_enabled: Use the cache backend; disable to run without Redis.
        cache_ttl_seconds: Lifetime of a cached query result.
        cache_timeout: Seconds allowed for a single cache call.
        result_limit: Maximum number of documents returned per query.
    """

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    index_path: str = ":memory:"
    index_timeout: float = 5.0

    redis_url: str = "redis://localhost:6379/0"
    cache_enabled: bool = True
    cache_ttl_seconds: int = 300
    cache_timeout: float = 0.5

    result_limit: int = 10
