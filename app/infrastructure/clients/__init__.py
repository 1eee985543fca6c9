"""Infrastructure clients for external services."""

from infrastructure.clients.internal_api import InternalApiClient

__all__ = ["InternalApiClient"]
