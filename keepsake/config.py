"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Keepsake configuration. All values come from environment variables."""

    # Backend selection: "sqlite" (local) or "supabase" (hosted)
    backend: str = Field(default="sqlite")

    # Local storage
    database_path: Path = Field(default=Path("data/keepsake.db"))
    image_dir: Path = Field(default=Path("data/images"))
    public_image_base_url: str = Field(default="")

    # Supabase
    supabase_url: str = Field(default="")
    supabase_key: str = Field(default="")
    supabase_image_bucket: str = Field(default="memories")

    # Naver local search (place lookup)
    naver_client_id: str = Field(default="")
    naver_client_secret: str = Field(default="")

    # Views
    search_debounce_seconds: float = Field(default=0.3)
    gallery_columns: int = Field(default=3, ge=1)
    stats_top_k: int = Field(default=3, ge=1)
    display_timezone: str = Field(default="UTC")

    # HTTP
    http_timeout_seconds: float = Field(default=10.0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="KEEPSAKE_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="forbid",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
