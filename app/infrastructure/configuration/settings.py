"""Delivery service configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    DiscordSettings,
    InternalApiSettings,
    TelegramSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DeliverySettings,
    WebhookDeliverySettings,
)


class Settings(BaseSettings):
    """Delivery service configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object:

    - **Integrations**: Telegram, Discord and the internal API
    - **Infrastructure**: webhook retry schedule and chat delivery limits

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        timeout = settings.webhooks.WEBHOOK_REQUEST_TIMEOUT_SECONDS
        api_key = settings.internal_api.INTERNAL_API_KEY_WEB

        if settings.is_production:
            # Production-specific logic...
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    telegram: TelegramSettings
    discord: DiscordSettings
    internal_api: InternalApiSettings

    # Infrastructure settings
    webhooks: WebhookDeliverySettings
    delivery: DeliverySettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    @property
    def allow_private_webhook_urls(self) -> bool:
        """Whether webhook targets on private networks are accepted."""
        override = self.webhooks.WEBHOOK_ALLOW_PRIVATE_URLS
        if override is not None:
            return override
        return not self.is_production

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "telegram": TelegramSettings,
            "discord": DiscordSettings,
            "internal_api": InternalApiSettings,
            # Infrastructure
            "webhooks": WebhookDeliverySettings,
            "delivery": DeliverySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)
