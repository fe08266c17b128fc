"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline and service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    app_name: str = "quizforge"
    environment: str = "development"
    log_level: str = "INFO"

    pollinations_text_url: str = "https://text.pollinations.ai/openai"
    pollinations_model: str = "openai"

    huggingface_inference_url: str = "https://api-inference.huggingface.co/models"
    huggingface_token: str | None = None
    huggingface_primary_model: str = "mistralai/Mistral-7B-Instruct-v0.1"
    huggingface_secondary_model: str = "TinyLlama/TinyLlama-1.1B-Chat-v1.0"

    mistral_base_url: str = "https://api.mistral.ai/v1"
    mistral_api_key: str | None = None
    mistral_primary_model: str = "mistral-large-2411"
    mistral_secondary_model: str = "mistral-small-2411"
    mistral_legacy_model: str = "mistral-tiny"

    request_timeout_seconds: int = 60

    image_batch_size: int = Field(default=3, ge=1)
    image_batch_pause_seconds: float = Field(default=1.0, ge=0)
    image_max_retries: int = Field(default=2, ge=0)
    image_retry_base_delay_seconds: float = Field(default=1.0, ge=0)

    rate_limit_per_minute: int = Field(default=30, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
