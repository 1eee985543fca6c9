"""Telegram channel notifier using python-telegram-bot."""

from typing import TYPE_CHECKING, Optional, Sequence, Union

import httpx
from telegram import (
    Bot,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InputMediaPhoto,
    Message,
    ReplyParameters,
)
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.helpers import escape_markdown

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
from infrastructure.notifications.models import GenerationRecord, OutputType
from infrastructure.notifications.normalizer import PayloadNormalizer
from infrastructure.services import get_settings

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

ChatId = Union[int, str]


def render_keyboard(layout: ControlLayout) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(button.label, callback_data=button.callback_data)
                for button in row
            ]
            for row in layout
        ]
    )


def _as_chat_id(value: Union[int, str]) -> ChatId:
    if isinstance(value, str) and value.lstrip("-").isdigit():
        return int(value)
    return value


def _is_group_chat(chat_id: ChatId) -> bool:
    """Group and supergroup chat ids are negative."""
    return isinstance(chat_id, int) and chat_id < 0


class TelegramNotifier(ChannelNotifier):
    """Delivers generation results to Telegram chats.

    Text is always sent as escaped MarkdownV2. Photos are batched into media
    groups; documents bound for a group chat are delivered to the requesting
    user privately with a notice left in the group.

    Args:
        bot: python-telegram-bot ``Bot`` instance
        settings: Settings instance (defaults to the process settings)
        http_client: Optional shared AsyncClient used for media downloads
        normalizer: Optional PayloadNormalizer
    """

    def __init__(
        self,
        bot: Bot,
        settings: Optional["Settings"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        normalizer: Optional[PayloadNormalizer] = None,
    ) -> None:
        settings = settings or get_settings()
        self._bot = bot
        self._http_client = http_client
        self._normalizer = normalizer or PayloadNormalizer()
        self._message_limit = settings.telegram.TELEGRAM_MESSAGE_LIMIT
        self._group_limit = settings.delivery.DELIVERY_MEDIA_GROUP_LIMIT
        self._private_notice = settings.delivery.DELIVERY_PRIVATE_NOTICE
        self._logger = logger.bind(component="telegram_notifier")

    @property
    def platform(self) -> str:
        return "telegram"

    async def send_notification(
        self,
        context: ContextInput,
        fallback_text: str,
        record: GenerationRecord,
    ) -> None:
        ctx = coerce_context(context)
        if ctx.chat_id is None:
            self._logger.error("telegram_chat_id_missing", generation_id=record.id)
            raise NotificationConfigurationError(
                "Missing chat_id in notification context for Telegram notification"
            )

        chat_id = _as_chat_id(ctx.chat_id)
        reply_to = ctx.message_id

        with bind_delivery_context(generation_id=record.id, platform=self.platform):
            self._logger.info(
                "telegram_notification_started",
                chat_id=chat_id,
                status=record.status.value,
            )

            if not record.is_completed:
                await self._send_fallback(chat_id, fallback_text, reply_to)
                self._logger.info("telegram_failure_notice_sent", chat_id=chat_id)
                return

            controls = render_keyboard(build_control_layout(record))
            try:
                await self._deliver(chat_id, ctx.user_id, fallback_text, record, controls, reply_to)
            except (NotificationDeliveryError, TelegramError) as exc:
                self._logger.error(
                    "telegram_delivery_failed",
                    chat_id=chat_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await self._send_fallback(chat_id, fallback_text, reply_to)
                self._logger.warning("telegram_fallback_sent", chat_id=chat_id)
                return

            self._logger.info("telegram_notification_sent", chat_id=chat_id)

    async def _deliver(
        self,
        chat_id: ChatId,
        user_id: Optional[Union[int, str]],
        fallback_text: str,
        record: GenerationRecord,
        controls: InlineKeyboardMarkup,
        reply_to: Optional[Union[int, str]],
    ) -> None:
        async with scoped_http_client(self._http_client) as client:
            plan = await build_delivery_plan(
                record, self._normalizer, client, (self.platform,)
            )

            if plan.is_empty:
                self._logger.warning("no_deliverable_outputs", chat_id=chat_id)
                await self._send_text(chat_id, fallback_text, controls, reply_to)
                return

            private_user = (
                _as_chat_id(user_id)
                if user_id is not None and _is_group_chat(chat_id)
                else None
            )
            steps = group_media(
                plan.media, self._group_limit, split_last_photo=not plan.texts
            )
            self._logger.debug(
                "telegram_delivery_planned",
                media_count=len(plan.media),
                step_count=len(steps),
                text_count=len(plan.texts),
            )

            for index, step in enumerate(steps):
                is_last = index == len(steps) - 1 and not plan.texts
                fetched = await fetch_media(client, step)
                if len(fetched) > 1:
                    await self._send_photo_batch(chat_id, fetched, reply_to)
                else:
                    await self._send_single(
                        chat_id,
                        fetched[0],
                        controls if is_last else None,
                        reply_to,
                        private_user,
                    )

            if plan.texts:
                await self._send_text(chat_id, plan.joined_text, controls, reply_to)

    async def _send_single(
        self,
        chat_id: ChatId,
        media: FetchedMedia,
        markup: Optional[InlineKeyboardMarkup],
        reply_to: Optional[Union[int, str]],
        private_user: Optional[ChatId],
    ) -> Message:
        kind = media.item.kind

        if kind == OutputType.DOCUMENT and private_user is not None:
            await self._bot.send_document(
                chat_id=private_user, document=media.data, filename=media.filename
            )
            self._logger.info(
                "document_sent_privately", chat_id=chat_id, user_id=private_user
            )
            return await self._send_text(chat_id, self._private_notice, markup, reply_to)

        common = {
            "chat_id": chat_id,
            "reply_markup": markup,
            "reply_parameters": _reply_parameters(reply_to),
        }
        if kind == OutputType.IMAGE:
            return await self._bot.send_photo(
                photo=media.data, filename=media.filename, **common
            )
        if kind == OutputType.VIDEO:
            return await self._bot.send_video(
                video=media.data,
                filename=media.filename,
                supports_streaming=True,
                **common,
            )
        if kind == OutputType.ANIMATION:
            return await self._bot.send_animation(
                animation=media.data, filename=media.filename, **common
            )
        return await self._bot.send_document(
            document=media.data, filename=media.filename, **common
        )

    async def _send_photo_batch(
        self,
        chat_id: ChatId,
        photos: Sequence[FetchedMedia],
        reply_to: Optional[Union[int, str]],
    ) -> None:
        group = [
            InputMediaPhoto(media=photo.data, filename=photo.filename)
            for photo in photos
        ]
        try:
            await self._bot.send_media_group(
                chat_id=chat_id,
                media=group,
                reply_parameters=_reply_parameters(reply_to),
            )
            return
        except BadRequest as exc:
            self._logger.warning(
                "media_group_rejected",
                chat_id=chat_id,
                photo_count=len(photos),
                error=str(exc),
            )

        for photo in photos:
            await self._bot.send_photo(
                chat_id=chat_id,
                photo=photo.data,
                filename=photo.filename,
                reply_parameters=_reply_parameters(reply_to),
            )

    async def _send_text(
        self,
        chat_id: ChatId,
        text: str,
        markup: Optional[InlineKeyboardMarkup],
        reply_to: Optional[Union[int, str]],
    ) -> Message:
        """Escape and send text, split to fit; controls ride on the last chunk."""
        chunks = split_text(text, self._message_limit // 2) or [text]
        message = None
        for index, chunk in enumerate(chunks):
            is_last = index == len(chunks) - 1
            message = await self._bot.send_message(
                chat_id=chat_id,
                text=escape_markdown(chunk, version=2),
                parse_mode=ParseMode.MARKDOWN_V2,
                reply_markup=markup if is_last else None,
                reply_parameters=_reply_parameters(reply_to),
            )
        return message

    async def _send_fallback(
        self,
        chat_id: ChatId,
        fallback_text: str,
        reply_to: Optional[Union[int, str]],
    ) -> None:
        try:
            await self._send_text(chat_id, fallback_text, None, reply_to)
        except TelegramError as exc:
            self._logger.error(
                "telegram_fallback_failed", chat_id=chat_id, error=str(exc)
            )
            raise NotificationDeliveryError(
                f"Telegram fallback message failed: {exc}"
            ) from exc


def _reply_parameters(reply_to: Optional[Union[int, str]]) -> Optional[ReplyParameters]:
    if reply_to is None:
        return None
    try:
        message_id = int(reply_to)
    except (TypeError, ValueError):
        return None
    return ReplyParameters(message_id=message_id, allow_sending_without_reply=True)
