"""Channel notifier implementations."""

from infrastructure.notifications.channels.base import ChannelNotifier
from infrastructure.notifications.channels.discord import DiscordNotifier
from infrastructure.notifications.channels.telegram import TelegramNotifier
from infrastructure.notifications.channels.webhook import WebhookNotifier

__all__ = [
    "ChannelNotifier",
    "DiscordNotifier",
    "TelegramNotifier",
    "WebhookNotifier",
]
