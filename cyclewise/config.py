"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Cyclewise"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # --- Engine ---
    engine_config_path: Path | None = None  # None = bundled engine_config.yaml

    # --- Education content ---
    education_base_url: str = "https://guyrofe.com"

    model_config = SettingsConfigDict(
        env_prefix="CYCLEWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
