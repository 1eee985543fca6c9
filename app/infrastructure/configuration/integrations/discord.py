"""Discord integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class DiscordSettings(IntegrationSettings):
    """Discord bot configuration.

    Environment Variables:
        DISCORD_BOT_TOKEN: Discord bot token
        DISCORD_MESSAGE_LIMIT: Maximum characters per message content (default: 2000)
    """

    DISCORD_BOT_TOKEN: str = Field(default="", alias="DISCORD_BOT_TOKEN")
    DISCORD_MESSAGE_LIMIT: int = Field(default=2000, alias="DISCORD_MESSAGE_LIMIT")
