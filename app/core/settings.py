from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    data_dir: str = Field(default="data", alias="DATA_DIR")
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"], alias="ALLOWED_ORIGINS")
    rate_limit_per_minute: int = Field(default=120, alias="RATE_LIMIT_PER_MINUTE")
    pin_length: int = Field(default=4, alias="PIN_LENGTH")

    workflow_workers: int = Field(default=4, ge=1, alias="WORKFLOW_WORKERS")
    # 0 leaves the job queue unbounded
    workflow_queue_size: int = Field(default=0, ge=0, alias="WORKFLOW_QUEUE_SIZE")
    random_seed: Optional[int] = Field(default=None, alias="RANDOM_SEED")

    submission_delay_seconds: float = Field(default=1.0, ge=0, alias="SUBMISSION_DELAY_SECONDS")
    review_delay_min_seconds: float = Field(default=2.0, ge=0, alias="REVIEW_DELAY_MIN_SECONDS")
    review_delay_max_seconds: float = Field(default=5.0, ge=0, alias="REVIEW_DELAY_MAX_SECONDS")
    payment_pending_delay_seconds: float = Field(
        default=0.5, ge=0, alias="PAYMENT_PENDING_DELAY_SECONDS"
    )
    gateway_delay_min_seconds: float = Field(default=3.0, ge=0, alias="GATEWAY_DELAY_MIN_SECONDS")
    gateway_delay_max_seconds: float = Field(default=10.0, ge=0, alias="GATEWAY_DELAY_MAX_SECONDS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
