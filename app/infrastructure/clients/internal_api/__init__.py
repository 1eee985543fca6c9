"""Internal API client for infrastructure layer.

Public API (Package Level):
- InternalApiClient: async client for the internal REST API

Developer Usage:
    from infrastructure.clients.internal_api import InternalApiClient

    client = InternalApiClient(settings)
    result = await client.get_spell_cast(cast_id)
    if result.is_success:
        cast = result.data
"""

from infrastructure.clients.internal_api.client import InternalApiClient

__all__ = [
    "InternalApiClient",
]
