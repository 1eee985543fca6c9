"""Channel notifier abstract base class.

All channel implementations (Telegram, Discord, Webhook) implement this
interface. Implementations hold no per-delivery state, so one instance can
serve any number of concurrent deliveries.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Union

from infrastructure.notifications.models import GenerationRecord, NotificationContext

ContextInput = Optional[Union[NotificationContext, Mapping[str, Any]]]


def coerce_context(context: ContextInput) -> NotificationContext:
    """Accept a NotificationContext, a raw mapping, or nothing."""
    if isinstance(context, NotificationContext):
        return context
    if context is None:
        return NotificationContext()
    return NotificationContext.model_validate(dict(context))


class ChannelNotifier(ABC):
    """Abstract base class for channel notifiers.

    Each notifier delivers one generation record to one external channel:
    - TelegramNotifier: Telegram chats via the Bot API
    - DiscordNotifier: Discord channels and DMs
    - WebhookNotifier: signed HTTP POST to a user-configured URL

    Example Implementation:
        class EchoNotifier(ChannelNotifier):

            @property
            def platform(self) -> str:
                return "echo"

            async def send_notification(self, context, fallback_text, record):
                print(fallback_text)
    """

    @property
    @abstractmethod
    def platform(self) -> str:
        """Platform identifier matched against ``record.notification_platform``."""

    @abstractmethod
    async def send_notification(
        self,
        context: ContextInput,
        fallback_text: str,
        record: GenerationRecord,
    ) -> None:
        """Deliver a record to this channel.

        Completed records have their whole payload delivered; anything else
        gets ``fallback_text`` as the failure notice. When rich delivery
        fails the notifier sends ``fallback_text`` once more as plain text
        before giving up.

        Args:
            context: Addressing for chat channels (ignored by webhooks)
            fallback_text: Human-readable summary used as the failure notice
                and as the last-resort message
            record: Generation record to deliver

        Raises:
            NotificationConfigurationError: destination missing or invalid
            NotificationDeliveryError: delivery and fallback both failed
        """
