"""Delivery context binding for structured logging.

Binds per-delivery context (generation id, platform, correlation id) to
every log entry emitted while one notification is being delivered.

Usage:
    from infrastructure.logging import bind_delivery_context

    with bind_delivery_context(generation_id="665f...", platform="telegram"):
        logger.info("notification_delivery_started")

Notes:
    structlog context variables are copied into each asyncio task when the
    task is created, so concurrent deliveries started with asyncio.gather
    never see each other's context.
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_delivery_context(
    generation_id: Optional[str] = None,
    platform: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind delivery-scoped context to all logs within the context manager.

    Args:
        generation_id: Identifier of the generation record being delivered.
        platform: Notification platform handling the record.
        correlation_id: Correlation identifier. Inherited from an enclosing
            delivery context, or auto-generated.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars.
    """
    context: dict[str, Any] = {
        "correlation_id": correlation_id or get_correlation_id() or str(uuid.uuid4())
    }

    if generation_id is not None:
        context["generation_id"] = generation_id

    if platform is not None:
        context["platform"] = platform

    context.update(extra_context)

    # Nested bindings restore the outer values on exit.
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_delivery_context() -> None:
    """Clear all delivery-scoped context from the logging context."""
    structlog.contextvars.clear_contextvars()
