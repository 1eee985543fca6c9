"""Infrastructure configuration module - public API.

Centralized configuration for the delivery service using pydantic-settings
with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    WebhookDeliverySettings: Webhook retry settings class
    DeliverySettings: Chat delivery settings class

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    delays = settings.webhooks.WEBHOOK_RETRY_DELAYS_SECONDS
    if settings.is_production:
        ...
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure import (
    DeliverySettings,
    WebhookDeliverySettings,
)

__all__ = ["Settings", "DeliverySettings", "WebhookDeliverySettings"]
