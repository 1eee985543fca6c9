"""Telegram integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class TelegramSettings(IntegrationSettings):
    """Telegram Bot API configuration.

    Environment Variables:
        TELEGRAM_BOT_TOKEN: Bot token issued by BotFather
        TELEGRAM_MESSAGE_LIMIT: Maximum characters per text message (default: 4096)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        token = settings.telegram.TELEGRAM_BOT_TOKEN
        ```
    """

    TELEGRAM_BOT_TOKEN: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    TELEGRAM_MESSAGE_LIMIT: int = Field(default=4096, alias="TELEGRAM_MESSAGE_LIMIT")
