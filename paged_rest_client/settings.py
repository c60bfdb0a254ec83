"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the command-line harness and ``create_client``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_provider: str = "ftc"
    api_key: str | None = None
    api_base_url: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    token_url: str | None = None
    request_timeout: float = 30.0
    page_size: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
