import logging
import socket
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Shortlink Redirector"
    app_version: str = "1.0.0"

    # Database (mapping store)
    database_url: str = "sqlite:///./shortlink.db"
    # Analytics store, falls back to database_url when unset
    analytics_database_url: Optional[str] = None

    # Short codes
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = 8
    short_code_strategy: str = "nanoid"  # Options: "nanoid", "random"
    max_retries: int = 5  # Collision retries in the create flow

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)
    cache_timeout: float = 0.25  # Upper bound for a single cache call, seconds
    cache_key_prefix: str = ""

    # Queue settings
    queue_backend: str = "redis_streams"  # Options: "redis_streams", "memory"
    queue_name: str = "clicks"
    queue_consumer_group: str = "click_ingestors"
    queue_consumer_name: str = Field(default_factory=socket.gethostname)
    queue_publish_timeout: float = 0.5
    queue_block_ms: int = 1000

    # Click ingestor
    click_failure_policy: str = "discard"  # Options: "discard", "dead_letter"
    dead_letter_queue_name: str = "clicks.dead"
    worker_retry_delay: float = 1.0

    # Bearer tokens are issued elsewhere, we only verify them
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Browser origins allowed to call the API (the dashboard UI)
    cors_origins: List[str] = ["http://localhost:5173"]

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the API and the worker."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
