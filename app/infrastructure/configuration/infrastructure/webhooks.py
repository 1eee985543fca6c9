"""Webhook delivery infrastructure settings."""

from typing import List, Optional

from pydantic import Field, model_validator

from infrastructure.configuration.base import InfrastructureSettings


class WebhookDeliverySettings(InfrastructureSettings):
    """Outbound webhook delivery configuration.

    Controls the per-delivery retry schedule of the webhook notifier. The
    schedule is fixed (not exponential): the wait before attempt ``n + 1``
    is ``WEBHOOK_RETRY_DELAYS_SECONDS[n]``.

    Environment Variables:
        WEBHOOK_RETRY_DELAYS_SECONDS: JSON list of waits between attempts (default: [1, 5, 30])
        WEBHOOK_MAX_ATTEMPTS: Total HTTP attempts per delivery (default: 3)
        WEBHOOK_REQUEST_TIMEOUT_SECONDS: Hard timeout of a single attempt (default: 10s)
        WEBHOOK_USER_AGENT: User-Agent header sent with every POST
        WEBHOOK_ALLOW_PRIVATE_URLS: Allow loopback/private targets. When unset,
            private targets are allowed outside production only.

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        delays = settings.webhooks.WEBHOOK_RETRY_DELAYS_SECONDS
        ```
    """

    WEBHOOK_RETRY_DELAYS_SECONDS: List[float] = Field(
        default_factory=lambda: [1.0, 5.0, 30.0],
        alias="WEBHOOK_RETRY_DELAYS_SECONDS",
        description="Wait before each retry, in seconds",
    )
    WEBHOOK_MAX_ATTEMPTS: int = Field(
        default=3,
        alias="WEBHOOK_MAX_ATTEMPTS",
        description="Total HTTP attempts per webhook delivery",
    )
    WEBHOOK_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        alias="WEBHOOK_REQUEST_TIMEOUT_SECONDS",
        description="Hard timeout for one HTTP attempt",
    )
    WEBHOOK_USER_AGENT: str = Field(
        default="StationThis-Webhook/1.0",
        alias="WEBHOOK_USER_AGENT",
    )
    WEBHOOK_ALLOW_PRIVATE_URLS: Optional[bool] = Field(
        default=None,
        alias="WEBHOOK_ALLOW_PRIVATE_URLS",
        description="Override the production SSRF guard",
    )

    @model_validator(mode="after")
    def validate_schedule(self) -> "WebhookDeliverySettings":
        """Reject schedules that cannot produce a delivery attempt."""
        if self.WEBHOOK_MAX_ATTEMPTS < 1:
            raise ValueError("WEBHOOK_MAX_ATTEMPTS must be at least 1")
        if not self.WEBHOOK_RETRY_DELAYS_SECONDS:
            raise ValueError("WEBHOOK_RETRY_DELAYS_SECONDS must not be empty")
        if any(delay < 0 for delay in self.WEBHOOK_RETRY_DELAYS_SECONDS):
            raise ValueError("WEBHOOK_RETRY_DELAYS_SECONDS must be non-negative")
        if self.WEBHOOK_REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("WEBHOOK_REQUEST_TIMEOUT_SECONDS must be positive")
        return self
