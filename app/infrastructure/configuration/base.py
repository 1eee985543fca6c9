"""Shared base classes for settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class IntegrationSettings(BaseSettings):
    """Base class for external platform settings.

    Chat platform SDK credentials and the internal API client inherit from
    this class so every integration loads `.env` the same way.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class InfrastructureSettings(BaseSettings):
    """Base class for delivery pipeline settings.

    Infrastructure settings control retry schedules, timeouts and batching
    limits of the notification delivery subsystem.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
