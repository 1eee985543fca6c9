"""Discord channel notifier using discord.py."""

import io
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Union

import discord
import httpx

from infrastructure.logging import bind_delivery_context, get_module_logger
from infrastructure.notifications.channels.base import (
    ChannelNotifier,
    ContextInput,
    coerce_context,
)
from infrastructure.notifications.channels.delivery import (
    FetchedMedia,
    build_delivery_plan,
    fetch_media,
    group_media,
    scoped_http_client,
    split_text,
)
from infrastructure.notifications.controls import ControlLayout, build_control_layout
from infrastructure.notifications.exceptions import (
    NotificationConfigurationError,
    NotificationDeliveryError,
)
from infrastructure.notifications.models import GenerationRecord
from infrastructure.notifications.normalizer import PayloadNormalizer
from infrastructure.services import get_settings

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

# Hints written for Telegram apply on Discord unless Discord has its own.
HINT_PLATFORMS = ("discord", "telegram")


def render_view(layout: ControlLayout) -> discord.ui.View:
    """Build a persistent view with one button row per layout row.

    Must be called from a running event loop.
    """
    view = discord.ui.View(timeout=None)
    for row_index, row in enumerate(layout):
        for button in row:
            view.add_item(
                discord.ui.Button(
                    style=discord.ButtonStyle.secondary,
                    label=button.label,
                    custom_id=button.callback_data,
                    row=row_index,
                )
            )
    return view


def _to_file(media: FetchedMedia) -> discord.File:
    return discord.File(io.BytesIO(media.data), filename=media.filename)


def _snowflake(value: Union[int, str], field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise NotificationConfigurationError(
            f"Invalid Discord {field}: {value!r}"
        ) from exc


class DiscordNotifier(ChannelNotifier):
    """Delivers generation results to Discord channels.

    Photos go out as one multi-file message (up to the media-group limit).
    Documents bound for a guild channel are sent to the requesting user by
    DM with a notice left in the channel; when the DM cannot be opened the
    document is posted in the channel instead.

    Args:
        client: discord.py ``Client`` (logged in)
        settings: Settings instance (defaults to the process settings)
        http_client: Optional shared AsyncClient used for media downloads
        normalizer: Optional PayloadNormalizer
    """

    def __init__(
        self,
        client: discord.Client,
        settings: Optional["Settings"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        normalizer: Optional[PayloadNormalizer] = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = client
        self._http_client = http_client
        self._normalizer = normalizer or PayloadNormalizer()
        self._message_limit = settings.discord.DISCORD_MESSAGE_LIMIT
        self._group_limit = settings.delivery.DELIVERY_MEDIA_GROUP_LIMIT
        self._private_notice = settings.delivery.DELIVERY_PRIVATE_NOTICE
        self._logger = logger.bind(component="discord_notifier")

    @property
    def platform(self) -> str:
        return "discord"

    async def send_notification(
        self,
        context: ContextInput,
        fallback_text: str,
        record: GenerationRecord,
    ) -> None:
        ctx = coerce_context(context)
        if ctx.chat_id is None:
            self._logger.error("discord_channel_id_missing", generation_id=record.id)
            raise NotificationConfigurationError(
                "Missing channelId in notification context for Discord notification"
            )

        with bind_delivery_context(generation_id=record.id, platform=self.platform):
            channel = await self._resolve_channel(_snowflake(ctx.chat_id, "channel id"))
            reference = self._reference(channel, ctx.message_id)
            self._logger.info(
                "discord_notification_started",
                channel_id=channel.id,
                status=record.status.value,
            )

            if not record.is_completed:
                await self._send_fallback(channel, fallback_text, reference)
                self._logger.info("discord_failure_notice_sent", channel_id=channel.id)
                return

            view = render_view(build_control_layout(record))
            try:
                await self._deliver(channel, ctx.user_id, fallback_text, record, view, reference)
            except (NotificationDeliveryError, discord.DiscordException) as exc:
                self._logger.error(
                    "discord_delivery_failed",
                    channel_id=channel.id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await self._send_fallback(channel, fallback_text, reference)
                self._logger.warning("discord_fallback_sent", channel_id=channel.id)
                return

            self._logger.info("discord_notification_sent", channel_id=channel.id)

    async def _resolve_channel(self, channel_id: int) -> Any:
        channel = self._client.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self._client.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden) as exc:
            raise NotificationConfigurationError(
                f"Discord channel {channel_id} is not reachable: {exc}"
            ) from exc
        except discord.HTTPException as exc:
            raise NotificationDeliveryError(
                f"Failed to fetch Discord channel: {exc}",
                status_code=getattr(exc, "status", None),
            ) from exc

    @staticmethod
    def _reference(
        channel: Any, message_id: Optional[Union[int, str]]
    ) -> Optional[discord.MessageReference]:
        if message_id is None:
            return None
        try:
            return discord.MessageReference(
                message_id=int(message_id),
                channel_id=channel.id,
                fail_if_not_exists=False,
            )
        except (TypeError, ValueError):
            return None

    async def _deliver(
        self,
        channel: Any,
        user_id: Optional[Union[int, str]],
        fallback_text: str,
        record: GenerationRecord,
        view: discord.ui.View,
        reference: Optional[discord.MessageReference],
    ) -> None:
        async with scoped_http_client(self._http_client) as client:
            plan = await build_delivery_plan(
                record, self._normalizer, client, HINT_PLATFORMS
            )

            if plan.is_empty:
                self._logger.warning("no_deliverable_outputs", channel_id=channel.id)
                await self._send_text(channel, fallback_text, view, reference)
                return

            is_guild = getattr(channel, "guild", None) is not None
            private_user = user_id if is_guild and user_id is not None else None
            steps = group_media(plan.media, self._group_limit)

            for index, step in enumerate(steps):
                is_last = index == len(steps) - 1 and not plan.texts
                fetched = await fetch_media(client, step)
                step_view = view if is_last else None
                if len(fetched) > 1:
                    await self._send_file_batch(channel, fetched, step_view, reference)
                else:
                    await self._send_single(
                        channel, fetched[0], step_view, reference, private_user
                    )

            if plan.texts:
                await self._send_text(channel, plan.joined_text, view, reference)

    async def _open_dm(self, user_id: Union[int, str]) -> Optional[Any]:
        try:
            snowflake = int(user_id)
            user = self._client.get_user(snowflake) or await self._client.fetch_user(
                snowflake
            )
            return await user.create_dm()
        except (TypeError, ValueError, discord.HTTPException) as exc:
            self._logger.warning(
                "discord_dm_unavailable", user_id=str(user_id), error=str(exc)
            )
            return None

    async def _send_single(
        self,
        channel: Any,
        media: FetchedMedia,
        view: Optional[discord.ui.View],
        reference: Optional[discord.MessageReference],
        private_user: Optional[Union[int, str]],
    ) -> None:
        if media.item.is_document and private_user is not None:
            dm_channel = await self._open_dm(private_user)
            if dm_channel is not None:
                await dm_channel.send(file=_to_file(media))
                self._logger.info(
                    "document_sent_privately",
                    channel_id=channel.id,
                    user_id=str(private_user),
                )
                await self._send_text(channel, self._private_notice, view, reference)
                return

        await channel.send(**_message_kwargs(file=_to_file(media), view=view, reference=reference))

    async def _send_file_batch(
        self,
        channel: Any,
        photos: Sequence[FetchedMedia],
        view: Optional[discord.ui.View],
        reference: Optional[discord.MessageReference],
    ) -> None:
        try:
            await channel.send(
                **_message_kwargs(
                    files=[_to_file(photo) for photo in photos],
                    view=view,
                    reference=reference,
                )
            )
            return
        except discord.HTTPException as exc:
            self._logger.warning(
                "media_group_rejected",
                channel_id=channel.id,
                photo_count=len(photos),
                error=str(exc),
            )

        for index, photo in enumerate(photos):
            is_last = index == len(photos) - 1
            await channel.send(
                **_message_kwargs(
                    file=_to_file(photo),
                    view=view if is_last else None,
                    reference=reference,
                )
            )

    async def _send_text(
        self,
        channel: Any,
        text: str,
        view: Optional[discord.ui.View],
        reference: Optional[discord.MessageReference],
    ) -> None:
        """Escape and send text, split to fit; the view rides on the last chunk."""
        chunks = split_text(text, self._message_limit // 2) or [text]
        for index, chunk in enumerate(chunks):
            is_last = index == len(chunks) - 1
            await channel.send(
                **_message_kwargs(
                    content=discord.utils.escape_markdown(chunk),
                    view=view if is_last else None,
                    reference=reference,
                )
            )

    async def _send_fallback(
        self,
        channel: Any,
        fallback_text: str,
        reference: Optional[discord.MessageReference],
    ) -> None:
        try:
            await self._send_text(channel, fallback_text, None, reference)
        except discord.DiscordException as exc:
            self._logger.error(
                "discord_fallback_failed", channel_id=channel.id, error=str(exc)
            )
            raise NotificationDeliveryError(
                f"Discord fallback message failed: {exc}",
                status_code=getattr(exc, "status", None),
            ) from exc


def _message_kwargs(**kwargs: Any) -> Dict[str, Any]:
    """Drop unset options; discord.py distinguishes missing from None."""
    return {key: value for key, value in kwargs.items() if value is not None}
