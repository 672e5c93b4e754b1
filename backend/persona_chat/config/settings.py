"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Persona Chat"
    app_version: str = "1.0.0"
    debug: bool = False

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Relational store (async SQLAlchemy URL)
    database_url: str = "sqlite+aiosqlite:///./data/persona_chat.db"
    database_echo: bool = False

    # Completion provider settings
    llm_provider: str = "openrouter"  # "openrouter" or "openai"
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_app_url: str = "http://localhost:3000"  # sent as HTTP-Referer to OpenRouter
    llm_timeout_seconds: float = 120.0

    # Model selection
    default_model: str = "google/gemini-2.0-flash-001"
    allowed_models: list[str] = [
        "google/gemini-2.0-flash-001",
        "anthropic/claude-3.5-sonnet",
        "openai/gpt-4o-mini",
        "meta-llama/llama-3.1-70b-instruct",
    ]
    title_model: str = "google/gemini-2.0-flash-001"

    # Chat turn behaviour
    daily_message_limit: int = 15
    placeholder_title_length: int = 50
    title_refresh_max_messages: int = 6  # 3 user/assistant pairs
    stream_smoothing: bool = True
    stream_chunk_delay_ms: int = 10

    # Seconds to wait for pending title tasks on shutdown
    title_shutdown_timeout: float = 5.0

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/persona_chat.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log all LLM calls with token usage

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
