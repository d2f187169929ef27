"""
Application configuration using pydantic-settings.

Loads and validates environment variables from .env file or system environment.
"""

from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # API & Application
    # =============================================================================
    app_name: str = Field(default="lingomesh")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    environment: Literal["development", "production", "testing"] = Field(default="development")
    debug: bool = Field(default=False)

    # =============================================================================
    # Database Configuration (durable cache tier)
    # =============================================================================
    database_url: str = Field(
        default="sqlite:///./lingomesh.db",
        description="Database connection URL"
    )
    db_vendor: Literal["postgres", "mysql", "sqlite"] = Field(default="sqlite")
    db_pool_size: int = Field(default=10)
    db_max_overflow: int = Field(default=10)
    db_pool_pre_ping: bool = Field(default=True)

    # =============================================================================
    # Redis Configuration (fast cache tier)
    # =============================================================================
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_max_connections: int = Field(default=100)
    redis_socket_timeout: float = Field(default=3.0)

    # =============================================================================
    # Celery Configuration
    # =============================================================================
    celery_broker_url: str = Field(default="redis://localhost:6379/1")
    celery_result_backend: str = Field(default="redis://localhost:6379/1")

    # =============================================================================
    # Translation Providers
    # =============================================================================
    # Primary provider - open source, self-hosted
    libretranslate_url: str = Field(default="http://libretranslate:5000")
    libretranslate_api_key: str = Field(default="")

    # Fast self-hosted engine
    bergamot_url: str = Field(default="")

    # Neural models: self-hosted service URL, or the hosted inference API with a key
    huggingface_url: str = Field(default="")
    huggingface_api_key: str = Field(default="")

    # Paid cloud engine, last resort
    google_translate_api_key: str = Field(default="")

    provider_timeout_seconds: float = Field(default=30.0)

    # =============================================================================
    # Translation Cache & Batching
    # =============================================================================
    cache_enabled: bool = Field(default=True)
    cache_ttl_seconds: int = Field(default=86400, ge=1)
    cache_sweep_interval_seconds: int = Field(default=3600, ge=60)

    max_batch_size: int = Field(default=50, ge=1)
    batch_timeout_seconds: float = Field(default=30.0, gt=0)

    default_source_lang: str = Field(default="en")
    default_target_lang: str = Field(default="hi")

    background_queue_size: int = Field(default=1000, ge=1)
    background_workers: int = Field(default=4, ge=1)

    # =============================================================================
    # Logging Configuration
    # =============================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")
    log_output: Literal["stdout", "file", "both"] = Field(default="stdout")
    log_file: str = Field(default="/app/logs/lingomesh.log")


# =============================================================================
# Singleton Settings Instance
# =============================================================================
settings = Settings()

