"""Unit tests for notifier wiring and the NotificationService facade."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from infrastructure.configuration.integrations import TelegramSettings
from infrastructure.notifications.channels.discord import DiscordNotifier
from infrastructure.notifications.channels.telegram import TelegramNotifier
from infrastructure.notifications.channels.webhook import WebhookNotifier
from infrastructure.notifications.dispatcher import DeliveryDispatcher
from infrastructure.notifications.service import NotificationService, build_notifiers
from infrastructure.operations import OperationResult


@pytest.mark.unit
class TestBuildNotifiers:
    def test_webhook_only_without_bots(self, settings):
        notifiers = build_notifiers(settings)

        assert list(notifiers) == ["webhook"]
        assert isinstance(notifiers["webhook"], WebhookNotifier)

    def test_telegram_from_explicit_bot(self, settings):
        notifiers = build_notifiers(settings, telegram_bot=AsyncMock())

        assert isinstance(notifiers["telegram"], TelegramNotifier)

    def test_telegram_from_token(self, settings):
        configured = settings.model_copy(
            update={"telegram": TelegramSettings(TELEGRAM_BOT_TOKEN="123456:test-token")}
        )

        notifiers = build_notifiers(configured)

        assert isinstance(notifiers["telegram"], TelegramNotifier)

    def test_discord_needs_client(self, settings):
        assert "discord" not in build_notifiers(settings)

        notifiers = build_notifiers(settings, discord_client=MagicMock())

        assert isinstance(notifiers["discord"], DiscordNotifier)


@pytest.mark.unit
class TestNotificationService:
    def test_builds_dispatcher_from_settings(self, settings, mock_internal_api):
        service = NotificationService(
            settings, internal_api=mock_internal_api, telegram_bot=AsyncMock()
        )

        assert isinstance(service.dispatcher, DeliveryDispatcher)
        assert service.dispatcher.internal_api is mock_internal_api
        assert service.dispatcher.max_delivery_attempts == 3
        assert sorted(service.list_platforms()) == ["telegram", "webhook"]

    def test_register_and_get_notifier(self, settings, mock_internal_api, mock_notifier_factory):
        service = NotificationService(settings, notifiers={}, internal_api=mock_internal_api)
        notifier = mock_notifier_factory("discord")

        service.register_notifier("discord", notifier)

        assert service.get_notifier("discord") is notifier
        assert service.get_notifier("sms") is None
        assert service.list_platforms() == ["discord"]

    @pytest.mark.asyncio
    async def test_dispatch_delegates(self, settings, record_factory):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(return_value=OperationResult.success())
        dispatcher.dispatch_many = AsyncMock(return_value=[OperationResult.success()])
        service = NotificationService(settings, dispatcher=dispatcher)
        record = record_factory()

        result = await service.dispatch(record)
        results = await service.dispatch_many([record])

        assert result.is_success
        assert len(results) == 1
        dispatcher.dispatch.assert_awaited_once_with(record)
        dispatcher.dispatch_many.assert_awaited_once_with([record])

    @pytest.mark.asyncio
    async def test_close_releases_internal_api(self, settings, mock_internal_api):
        service = NotificationService(settings, notifiers={}, internal_api=mock_internal_api)

        await service.close()

        mock_internal_api.close.assert_awaited_once()
