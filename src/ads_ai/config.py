from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    # Text analysis / chat backend: "gemini" or "openai"
    text_provider: str = "gemini"
    gemini_text_model: str = "gemini-2.0-flash"
    gemini_chat_model: str = "gemini-flash-latest"
    openai_text_model: str = "gpt-4.1-mini"

    # Image generation runs on Vertex AI with a service account.
    vertex_ai_project_id: str | None = None
    vertex_ai_location: str = "global"
    google_application_credentials: str | None = None
    vertex_image_model: str = "gemini-3-pro-image-preview"
    vertex_image_size: str = "1K"
    image_request_timeout_seconds: float = 120.0
    # Pause between sequential image calls to stay under upstream rate limits.
    image_call_delay_seconds: float = 1.0

    # Persistence
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    storage_bucket: str = "creatives"

    # Scraping
    scrape_timeout_seconds: float = 30.0
    scrape_user_agent: str = "Mozilla/5.0 (compatible; AdsAI/1.0; +https://ads-ai.vercel.app)"

    default_language: str = "uk"
    log_level: str = "INFO"


settings = Settings()
