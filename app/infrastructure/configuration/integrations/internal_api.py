"""Internal REST API integration settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class InternalApiSettings(IntegrationSettings):
    """Internal API client configuration.

    The internal API owns generation records, spell casts and delivery
    status. The notification subsystem only reads casts and reports
    delivery outcomes.

    Environment Variables:
        INTERNAL_API_BASE_URL: Base URL of the internal API
        INTERNAL_API_KEY_WEB: Client key sent as X-Internal-Client-Key
        INTERNAL_API_TIMEOUT_SECONDS: Request timeout (default: 30s)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        base_url = settings.internal_api.INTERNAL_API_BASE_URL
        ```
    """

    INTERNAL_API_BASE_URL: str = Field(
        default="http://localhost:4000", alias="INTERNAL_API_BASE_URL"
    )
    INTERNAL_API_KEY_WEB: Optional[str] = Field(
        default=None, alias="INTERNAL_API_KEY_WEB"
    )
    INTERNAL_API_TIMEOUT_SECONDS: float = Field(
        default=30.0, alias="INTERNAL_API_TIMEOUT_SECONDS"
    )
