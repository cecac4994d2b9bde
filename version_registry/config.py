"""
Configuration management for the Version Registry.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Every field can be overridden by the environment variable of the same
    name in upper case (e.g. ``DATABASE_URL``, ``OUTBOX_DIR``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Version Registry")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)

    # Database
    database_url: str = Field(default="sqlite:///./version_registry.db")

    # Lifecycle
    outbox_dir: str = Field(
        default="data/outbox",
        description="Directory or file:// URI where publication notices are written",
    )
    default_actor: str = Field(
        default="system",
        description="Actor recorded when a request does not identify one",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
