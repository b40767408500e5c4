"""Application configuration using pydantic-settings."""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    gemini_api_key: str = ""

    # Server
    port: int = 8080
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # Outbound HTTP (seconds)
    http_timeout: float = 30.0
    image_fetch_timeout: float = 15.0

    # Payload limits
    max_html_chars: int = 100_000
    max_image_bytes: int = 10 * 1024 * 1024  # 10MB
    max_page_bytes: int = 5 * 1024 * 1024  # raw markup before sanitizing

    # Rate Limiting
    rate_limit_per_hour: int = 100
    rate_limit_enabled: bool = True

    # CORS
    cors_origins: str = "*"  # Comma-separated origins or "*" for all

    # Gemini Settings
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.0
    gemini_max_tokens: int = 4096
    model_timeout: float = 90.0
    max_tags: int = 5

    # Storage
    storage_backend: str = "memory"  # "memory" or "couchdb"
    couchdb_url: str = "http://127.0.0.1:5984"
    couchdb_database: str = "recipes"
    couchdb_user: str = ""
    couchdb_password: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Get list of CORS origins."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
