"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    openai_api_key: str
    openai_model: str = "gpt-image-1"
    openai_image_size: str = "1024x1024"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash-image"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    google_sheets_api_key: str | None = None
    google_application_credentials: str | None = None
    spreadsheet_id: str
    spreadsheet_range: str = "برمجة الصور!A:C"
    default_provider: str = "openai"
    catalog_refresh_seconds: float = 120.0
    session_ttl_seconds: float = 300.0
    provider_timeout_seconds: float = 180.0
    seen_users_backend: Literal["file", "supabase"] = "file"
    seen_users_path: str = "sessions.json"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
