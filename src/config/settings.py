"""
Configuration management for Avatales

Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Avatales"
    log_level: str = "INFO"

    # =========================================================================
    # Account Security
    # Failed logins before the account is locked, and for how long
    # =========================================================================
    max_login_attempts: int = 5
    login_lockout_minutes: int = 15

    # =========================================================================
    # Subscription Usage
    # The monthly story quota is a rolling window starting at the last reset
    # =========================================================================
    monthly_reset_days: int = 30

    # Model tag stored on a story when generation starts without one
    default_ai_model: str = "gpt-4"

    # =========================================================================
    # Domain Lookup Tables
    # Override the bundled src/config/domain_tables.yaml (tests, experiments)
    # =========================================================================
    domain_tables_path: Optional[str] = None

    # Debug Logging Configuration
    debug_mode: bool = False
    debug_domain_events: bool = False  # Write every dispatched event to JSONL
    debug_log_dir: str = "./logs/debug"
    debug_log_format: str = "json"  # json or text

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def reset_settings():
    """Drop the cached settings (useful for testing)."""
    get_settings.cache_clear()
