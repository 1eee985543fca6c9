"""Test fixtures for notification delivery tests."""

from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from infrastructure.configuration import (
    DeliverySettings,
    Settings,
    WebhookDeliverySettings,
)
from infrastructure.configuration.integrations import (
    DiscordSettings,
    InternalApiSettings,
    TelegramSettings,
)
from infrastructure.notifications.models import GenerationRecord
from infrastructure.operations import OperationResult

MEDIA_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


@pytest.fixture
def settings():
    """Settings with deterministic values, independent of the environment."""
    return Settings(
        PREFIX="test",
        telegram=TelegramSettings(TELEGRAM_BOT_TOKEN="", TELEGRAM_MESSAGE_LIMIT=4096),
        discord=DiscordSettings(DISCORD_BOT_TOKEN="", DISCORD_MESSAGE_LIMIT=2000),
        internal_api=InternalApiSettings(
            INTERNAL_API_BASE_URL="http://internal-api.test",
            INTERNAL_API_KEY_WEB="web-client-key",
        ),
        webhooks=WebhookDeliverySettings(
            WEBHOOK_RETRY_DELAYS_SECONDS=[1, 5, 30],
            WEBHOOK_MAX_ATTEMPTS=3,
            WEBHOOK_REQUEST_TIMEOUT_SECONDS=10,
            WEBHOOK_ALLOW_PRIVATE_URLS=False,
        ),
        delivery=DeliverySettings(DELIVERY_MAX_ATTEMPTS=3, DELIVERY_MEDIA_GROUP_LIMIT=10),
    )


@pytest.fixture
def record_factory():
    """Factory for creating GenerationRecord instances from wire documents.

    Example:
        record = record_factory(status="failed", statusReason="GPU exploded")
        record = record_factory(responsePayload="hello", metadata={"rerunCount": 2})
    """

    def _factory(**overrides: Any) -> GenerationRecord:
        document: Dict[str, Any] = {
            "_id": "gen-123",
            "status": "completed",
            "serviceName": "comfyui",
            "toolId": "tool-flux",
            "notificationPlatform": "telegram",
            "responsePayload": [{"data": {"text": ["hello"]}}],
            "costUsd": {"$numberDecimal": "0.25"},
            "responseTimestamp": "2024-05-01T12:00:00Z",
            "metadata": {
                "displayName": "Flux Dev",
                "notificationContext": {"chatId": 12345, "userId": 777, "messageId": 42},
            },
        }
        metadata = overrides.pop("metadata", None)
        if metadata is not None:
            document["metadata"] = {**document["metadata"], **metadata}
        document.update(overrides)
        return GenerationRecord.model_validate(document)

    return _factory


@pytest.fixture
def media_client_factory():
    """Factory for AsyncClients that serve media from an in-memory map.

    Unknown URLs answer 404. ``requests`` collects every requested URL.

    Example:
        client = media_client_factory({"https://cdn.test/a.png": b"..."})
    """

    def _factory(
        responses: Optional[Dict[str, Any]] = None,
        default: bytes = MEDIA_BYTES,
        requests: Optional[list] = None,
    ) -> httpx.AsyncClient:
        responses = responses or {}

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if requests is not None:
                requests.append(url)
            body = responses.get(url, default)
            if isinstance(body, httpx.Response):
                return body
            if body is None:
                return httpx.Response(404, text="not found")
            if isinstance(body, str):
                body = body.encode("utf-8")
            return httpx.Response(200, content=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def mock_internal_api():
    """AsyncMock InternalApiClient whose calls succeed by default."""
    api = AsyncMock()
    api.update_generation.return_value = OperationResult.success(data={"ok": True})
    api.get_spell_cast.return_value = OperationResult.permanent_error(
        "not found", error_code="NOT_FOUND"
    )
    return api


@pytest.fixture
def mock_notifier_factory() -> Callable[..., AsyncMock]:
    """Factory for AsyncMock channel notifiers."""

    def _factory(platform: str = "telegram", side_effect: Any = None) -> AsyncMock:
        notifier = AsyncMock()
        notifier.platform = platform
        notifier.send_notification.side_effect = side_effect
        return notifier

    return _factory
