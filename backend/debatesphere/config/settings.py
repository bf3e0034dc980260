"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "DebateSphere"
    app_version: str = "1.0.0"
    debug: bool = False  # false = production error responses

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Storage
    local_storage_path: str = "./data"

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "mock"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_timeout_seconds: float = 30.0
    llm_context_messages: int = 10

    # Debate sessions
    default_time_limit_seconds: int = 1800
    ai_replies_enabled: bool = True
    ai_enrichment_enabled: bool = True  # reasoning gloss + follow-up suggestions
    session_sweep_interval_seconds: int = 60  # 0 disables the sweeper
    scoring_engine_version: str = "1.0"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/debatesphere.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
