"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.discord import DiscordSettings
from infrastructure.configuration.integrations.internal_api import InternalApiSettings
from infrastructure.configuration.integrations.telegram import TelegramSettings

__all__ = [
    "DiscordSettings",
    "InternalApiSettings",
    "TelegramSettings",
]
