"""Notification delivery exceptions.

Channel notifiers raise these; the dispatcher translates them into delivery
bookkeeping. Configuration errors are never retried, delivery errors may be
retried at the job level.
"""

from typing import Optional

RESPONSE_BODY_LIMIT = 200


class NotificationError(Exception):
    """Base class for all notification delivery errors."""


class NotificationConfigurationError(NotificationError):
    """Destination missing or invalid; retrying cannot help."""


class NotificationDeliveryError(NotificationError):
    """Delivery failed after the channel's own recovery was exhausted.

    Attributes:
        status_code: Last HTTP status seen, when the failure was an HTTP reply
        response_body: Last response body, truncated
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = (
            response_body[:RESPONSE_BODY_LIMIT] if response_body else response_body
        )


class MediaFetchError(NotificationDeliveryError):
    """A media or text-file URL could not be downloaded."""

    def __init__(
        self,
        url: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.url = url


class WebhookTimeoutError(NotificationDeliveryError):
    """A webhook attempt hit its hard deadline. Terminal, never retried."""
