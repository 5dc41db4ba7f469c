"""
Configuration management.
Simple .env based config for a local desktop install.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server (local only)
    host: str = "127.0.0.1"
    port: int = 8080

    # Security
    session_secret: str = "change-me-use-random-string"

    # Database
    database_url: str = "sqlite:grad.db"
    data_dir: str = "./data"

    # Inventory
    low_stock_threshold: int = 5

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
