"""Configuration settings for the application."""
import logging
from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "QA Center"
    app_version: str = "1.0.0"
    debug: bool = False
    api_prefix: str = "/api"

    # Database
    database_url: str
    database_echo: bool = False

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Billing rates (cost = what we pay, price = what we charge)
    cost_stt_prerecorded: float = Field(default=0.0052, alias="COST_STT_PRERECORDED")  # per minute
    cost_openai_input: float = Field(default=0.00005, alias="COST_OPENAI_GPT4O_INPUT")  # per token
    cost_openai_output: float = Field(default=0.00015, alias="COST_OPENAI_GPT4O_OUTPUT")
    price_stt_prerecorded: float = Field(default=0.0065, alias="PRICE_STT_PRERECORDED")
    price_openai_input: float = Field(default=0.0000625, alias="PRICE_OPENAI_GPT4O_INPUT")
    price_openai_output: float = Field(default=0.0001875, alias="PRICE_OPENAI_GPT4O_OUTPUT")

    # Credits
    default_low_balance_threshold: int = 20  # percent of total credits added

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_max_evaluations: int = 1000  # operator ceiling for maxEvaluations
    scheduler_default_max_evaluations: int = 50
    scheduler_lookback_hours: int = 24
    scheduler_job_priority: int = 5

    # Audio proxy
    audio_proxy_timeout_seconds: float = 30.0
    audio_proxy_cache_seconds: int = 3600

    # Logging
    log_level: str = "INFO"
    log_requests: bool = True

    class Config:
        import os as _os
        env_file = ".env.local" if _os.path.exists(".env.local") else ".env"
        case_sensitive = False
        populate_by_name = True  # Allow both field name and alias
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def validate_settings(current_settings: Settings) -> None:
    """Fail fast on rate or scheduler settings that cannot work."""
    rates = {
        "COST_STT_PRERECORDED": current_settings.cost_stt_prerecorded,
        "COST_OPENAI_GPT4O_INPUT": current_settings.cost_openai_input,
        "COST_OPENAI_GPT4O_OUTPUT": current_settings.cost_openai_output,
        "PRICE_STT_PRERECORDED": current_settings.price_stt_prerecorded,
        "PRICE_OPENAI_GPT4O_INPUT": current_settings.price_openai_input,
        "PRICE_OPENAI_GPT4O_OUTPUT": current_settings.price_openai_output,
    }
    negative = [name for name, value in rates.items() if value < 0]
    if negative:
        raise RuntimeError(f"Billing rates must be non-negative: {', '.join(negative)}")

    if current_settings.scheduler_max_evaluations < 1:
        raise RuntimeError("SCHEDULER_MAX_EVALUATIONS must be at least 1")

    if not 0 <= current_settings.default_low_balance_threshold <= 100:
        raise RuntimeError("DEFAULT_LOW_BALANCE_THRESHOLD must be between 0 and 100")

    logger.info(
        f"Scheduler: {'ENABLED' if current_settings.scheduler_enabled else 'DISABLED'} "
        f"(max evaluations per run: {current_settings.scheduler_max_evaluations})"
    )
