"""Custom log processors for structured logging.

Processors plugged into the structlog pipeline by configure_logging().

Usage:
    from infrastructure.logging.formatters import mask_sensitive_data
"""

from typing import Any


def add_app_info(app_name: str, app_version: str = "unknown"):
    """Create a processor that adds application info to log entries.

    Args:
        app_name: Name of the application.
        app_version: Version string (the deployed git SHA).

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


# Key fragments whose values must never reach the logs. Webhook secrets,
# computed signatures and the internal client key all match at least one.
SENSITIVE_PATTERNS = frozenset(
    {
        "secret",
        "token",
        "signature",
        "client_key",
        "api_key",
        "apikey",
        "authorization",
        "password",
        "credential",
        "cookie",
    }
)


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive values in log entries.

    Keys are matched case-insensitively against SENSITIVE_PATTERNS. Nested
    dicts (e.g. request headers) are masked as well.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def _mask(value: dict[str, Any]) -> dict[str, Any]:
        masked = {}
        for key, item in value.items():
            key_lower = str(key).lower().replace("-", "_")
            if item is not None and any(pattern in key_lower for pattern in patterns):
                masked[key] = mask_value
            elif isinstance(item, dict):
                masked[key] = _mask(item)
            else:
                masked[key] = item
        return masked

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        return _mask(event_dict)

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Upstream payloads and webhook response bodies can be arbitrarily large.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
