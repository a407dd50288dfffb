# meatshare/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PUBLIC_SITE_URL = "https://farmdirectmeat.com"


class Settings(BaseSettings):
    """
    Process-wide settings, resolved from the environment (.env supported).

    The values are read once; tests that change the environment must call
    ``get_settings.cache_clear()``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    database_url: str = "sqlite:///./app.db"

    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_buyer_price_id: Optional[str] = None
    stripe_farmer_price_id: Optional[str] = None
    stripe_timeout_seconds: float = 20.0

    public_site_url: str = DEFAULT_PUBLIC_SITE_URL
    frontend_url: str = ""
    vercel_frontend_url: str = ""
    vercel_frontend_url_preview: str = ""

    auth_jwt_secret: str = ""
    dev_mode: bool = False
    log_level: str = "INFO"

    checkout_idempotency_window_seconds: int = 600
    membership_days: int = 365

    @field_validator(
        "stripe_secret_key",
        "stripe_webhook_secret",
        "frontend_url",
        "vercel_frontend_url",
        "vercel_frontend_url_preview",
        "auth_jwt_secret",
        mode="before",
    )
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("stripe_buyer_price_id", "stripe_farmer_price_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("public_site_url", mode="before")
    @classmethod
    def _normalize_site_url(cls, v):
        if isinstance(v, str):
            return (v.strip() or DEFAULT_PUBLIC_SITE_URL).rstrip("/")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def cors_origins(self) -> Tuple[str, ...]:
        return tuple(
            url
            for url in (
                self.frontend_url,
                self.vercel_frontend_url,
                self.vercel_frontend_url_preview,
            )
            if url
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
