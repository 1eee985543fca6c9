"""
Application-scoped service providers.
"""

from infrastructure.services.providers import get_settings

__all__ = [
    "get_settings",
]
