"""Notification service wiring.

Provides a class-based entry point that builds the channel notifiers from
settings and wraps the DeliveryDispatcher, for easier wiring and testing.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

import discord
import httpx
from telegram import Bot

from infrastructure.clients.internal_api import InternalApiClient
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.discord import DiscordNotifier
from infrastructure.notifications.channels.telegram import TelegramNotifier
from infrastructure.notifications.channels.webhook import WebhookNotifier
from infrastructure.notifications.dispatcher import DeliveryDispatcher
from infrastructure.notifications.models import GenerationRecord
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from infrastructure.notifications.channels.base import ChannelNotifier

logger = get_module_logger()


def build_notifiers(
    settings: "Settings",
    telegram_bot: Optional[Bot] = None,
    discord_client: Optional[discord.Client] = None,
    internal_api: Optional[InternalApiClient] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, "ChannelNotifier"]:
    """Create one notifier per configured platform.

    The webhook notifier is always available. Telegram is enabled by an
    explicit bot or a ``TELEGRAM_BOT_TOKEN``. Discord needs a logged-in
    client, which the hosting bot process owns.
    """
    notifiers: Dict[str, "ChannelNotifier"] = {
        "webhook": WebhookNotifier(
            settings=settings, internal_api=internal_api, http_client=http_client
        )
    }

    if telegram_bot is None and settings.telegram.TELEGRAM_BOT_TOKEN:
        telegram_bot = Bot(token=settings.telegram.TELEGRAM_BOT_TOKEN)
    if telegram_bot is not None:
        notifiers["telegram"] = TelegramNotifier(
            telegram_bot, settings=settings, http_client=http_client
        )

    if discord_client is not None:
        notifiers["discord"] = DiscordNotifier(
            discord_client, settings=settings, http_client=http_client
        )
    elif settings.discord.DISCORD_BOT_TOKEN:
        logger.info("discord_notifier_skipped", reason="no_client_provided")

    logger.info("notifiers_built", platforms=sorted(notifiers.keys()))
    return notifiers


class NotificationService:
    """Class-based delivery service.

    Thin facade over DeliveryDispatcher; all actual work is delegated to the
    dispatcher and its notifiers.

    Usage:
        from infrastructure.services import get_settings
        from infrastructure.notifications import NotificationService

        service = NotificationService(get_settings(), telegram_bot=bot)
        result = await service.dispatch(record)
    """

    def __init__(
        self,
        settings: "Settings",
        notifiers: Optional[Dict[str, "ChannelNotifier"]] = None,
        dispatcher: Optional[DeliveryDispatcher] = None,
        internal_api: Optional[InternalApiClient] = None,
        telegram_bot: Optional[Bot] = None,
        discord_client: Optional[discord.Client] = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Settings instance
            notifiers: Optional platform -> notifier map; built from settings
                when omitted
            dispatcher: Optional pre-configured DeliveryDispatcher
            internal_api: Optional InternalApiClient; created from settings
                when omitted
            telegram_bot: Optional Telegram bot for the Telegram notifier
            discord_client: Optional Discord client for the Discord notifier
        """
        if dispatcher is None:
            if internal_api is None:
                internal_api = InternalApiClient(settings)
            if notifiers is None:
                notifiers = build_notifiers(
                    settings,
                    telegram_bot=telegram_bot,
                    discord_client=discord_client,
                    internal_api=internal_api,
                )
            dispatcher = DeliveryDispatcher(
                notifiers=notifiers,
                internal_api=internal_api,
                max_delivery_attempts=settings.delivery.DELIVERY_MAX_ATTEMPTS,
            )

        self._dispatcher = dispatcher
        self._settings = settings

    async def dispatch(
        self, record: Union[GenerationRecord, Mapping[str, Any]]
    ) -> OperationResult:
        """Deliver one generation record."""
        return await self._dispatcher.dispatch(record)

    async def dispatch_many(
        self, records: Iterable[Union[GenerationRecord, Mapping[str, Any]]]
    ) -> List[OperationResult]:
        """Deliver several generation records concurrently."""
        return await self._dispatcher.dispatch_many(records)

    def register_notifier(self, platform: str, notifier: "ChannelNotifier") -> None:
        """Register (or replace) the notifier for a platform."""
        self._dispatcher.notifiers[platform] = notifier

    def get_notifier(self, platform: str) -> Optional["ChannelNotifier"]:
        return self._dispatcher.notifiers.get(platform)

    def list_platforms(self) -> List[str]:
        return list(self._dispatcher.notifiers.keys())

    @property
    def dispatcher(self) -> DeliveryDispatcher:
        """Underlying DeliveryDispatcher instance."""
        return self._dispatcher

    async def close(self) -> None:
        """Release the internal API client's connections."""
        if self._dispatcher.internal_api is not None:
            await self._dispatcher.internal_api.close()
