"""
Configuration management using Pydantic Settings.
Loads from environment variables with sensible defaults for development.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase settings
    supabase_url: str = ""  # e.g., https://xxx.supabase.co
    supabase_anon_key: str = ""  # Used to validate caller tokens
    supabase_service_role_key: str = ""  # Privileged key for store access and role lookups

    # YouTube Data API settings
    youtube_api_key: str = ""  # Server-held, never returned to callers
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"
    youtube_page_size: int = 50  # playlistItems.list maxResults (API max is 50)
    youtube_batch_size: int = 50  # videos.list ids per call (API max is 50)
    youtube_request_timeout: float = 30.0  # seconds

    # Access control
    admin_role: str = "admin"

    # CORS
    cors_allow_origins: str = "*"  # Comma-separated origins

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into list."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @property
    def youtube_configured(self) -> bool:
        return bool(self.youtube_api_key)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
