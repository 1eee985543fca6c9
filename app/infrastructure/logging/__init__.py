"""Structured logging infrastructure.

Centralized logging configuration for the delivery service using structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_delivery_context(): Context manager for delivery-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - clear_delivery_context(): Clear all delivery context

Example:
    from infrastructure.logging import get_module_logger, bind_delivery_context

    logger = get_module_logger()

    with bind_delivery_context(generation_id="665f...", platform="webhook"):
        logger.info("webhook_delivered")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_delivery_context,
    get_correlation_id,
    clear_delivery_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_logger",
    "get_module_logger",
    # Context
    "bind_delivery_context",
    "get_correlation_id",
    "clear_delivery_context",
    # Formatters
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
