"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable the dashboard
relies on. That means anyone inspecting the project can quickly answer:

*What:* Which settings exist and what do they control?
*When:* They are read once, the first time ``get_settings`` is called.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* ``pydantic-settings`` reads the environment (and ``.env`` files) and
falls back to defaults that let the app boot in development.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Worklog"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None
    TZ: str = "America/Chicago"

    # ---- Backend platform (auth, rows, file storage)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    # When set, bearer tokens are verified locally instead of asking the platform.
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    SCREENSHOT_BUCKET: str = "images"

    # ---- Browser sessions
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "wl_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 30
    SESSION_HTTPS_ONLY: bool = False

    DEFAULT_HOURLY_RATE: Decimal = Decimal("50")
    # Comma separated list of origins allowed to call the JSON API from a browser.
    ALLOWED_ORIGINS: str = ""

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR or self.BASE_DIR / "templates"

    @property
    def static_dir(self) -> Path:
        return self.STATIC_DIR or self.BASE_DIR / "static"

    @property
    def platform_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)

    @property
    def allowed_origins(self) -> list[str]:
        return [item.strip() for item in self.ALLOWED_ORIGINS.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


# Importing ``settings`` anywhere gives access to the configured values without
# rebuilding the object each time.
settings = get_settings()
