"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.delivery import DeliverySettings
from infrastructure.configuration.infrastructure.webhooks import WebhookDeliverySettings

__all__ = [
    "DeliverySettings",
    "WebhookDeliverySettings",
]
