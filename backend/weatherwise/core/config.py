"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "WeatherWise Planner"
    log_level: str = "INFO"
    database_url: str = "sqlite:///./weatherwise.db"
    db_auto_create: bool = True

    # Generation service (Mistral exposes an OpenAI-compatible chat API)
    mistral_api_key: str | None = None
    generation_base_url: str = "https://api.mistral.ai/v1"
    generation_model: str = "mistral-large-latest"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 4000
    generation_timeout_seconds: float = 60.0
    dispatch_min_interval_seconds: float = 1.0

    cors_allow_origins: List[str] = ["*"]

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "weatherwise"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
