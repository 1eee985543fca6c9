"""Generation result delivery.

Delivers finished generation records to chat platforms (Telegram, Discord)
and to signed webhooks, with:
- Payload normalization across every historical response shape
- Per-platform rendering (media groups, documents, escaped text, controls)
- Webhook signing, URL validation and retry with a fixed backoff schedule
- Delivery status bookkeeping through the internal API

Usage:
    from infrastructure.notifications import (
        DeliveryDispatcher,
        GenerationRecord,
        TelegramNotifier,
        WebhookNotifier,
    )

    dispatcher = DeliveryDispatcher(
        notifiers={
            "telegram": TelegramNotifier(bot),
            "webhook": WebhookNotifier(internal_api=internal_api),
        },
        internal_api=internal_api,
    )

    record = GenerationRecord.model_validate(document)
    result = await dispatcher.dispatch(record)
"""

# Models
from infrastructure.notifications.models import (
    CanonicalOutputItem,
    GenerationMetadata,
    GenerationRecord,
    GenerationStatus,
    NotificationContext,
    OutputType,
)

# Errors
from infrastructure.notifications.exceptions import (
    MediaFetchError,
    NotificationConfigurationError,
    NotificationDeliveryError,
    NotificationError,
    WebhookTimeoutError,
)

# Normalization and helpers
from infrastructure.notifications.normalizer import PayloadNormalizer, classify_file
from infrastructure.notifications.utils import (
    normalize_cost_usd,
    sign_webhook,
    validate_webhook_url,
    verify_webhook_signature,
)

# Channel interface and implementations
from infrastructure.notifications.channels.base import ChannelNotifier
from infrastructure.notifications.channels.discord import DiscordNotifier
from infrastructure.notifications.channels.telegram import TelegramNotifier
from infrastructure.notifications.channels.webhook import WebhookNotifier

# Dispatcher
from infrastructure.notifications.dispatcher import (
    DeliveryDispatcher,
    build_fallback_message,
)
from infrastructure.notifications.service import NotificationService, build_notifiers

__all__ = [
    # Models
    "CanonicalOutputItem",
    "GenerationMetadata",
    "GenerationRecord",
    "GenerationStatus",
    "NotificationContext",
    "OutputType",
    # Errors
    "MediaFetchError",
    "NotificationConfigurationError",
    "NotificationDeliveryError",
    "NotificationError",
    "WebhookTimeoutError",
    # Normalization and helpers
    "PayloadNormalizer",
    "classify_file",
    "normalize_cost_usd",
    "sign_webhook",
    "validate_webhook_url",
    "verify_webhook_signature",
    # Channels
    "ChannelNotifier",
    "DiscordNotifier",
    "TelegramNotifier",
    "WebhookNotifier",
    # Dispatcher
    "DeliveryDispatcher",
    "NotificationService",
    "build_fallback_message",
    "build_notifiers",
]
