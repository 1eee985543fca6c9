"""Webhook channel notifier.

Delivers a signed JSON description of a finished generation (or spell cast)
to the URL stored in the record's ``metadata.webhookUrl``.

Payload shapes:
    tool execution: event, generationId, toolId, status, outputs, costUsd,
                    timestamp, error?, signature?
    spell cast:     event, castId, spellId, spellSlug, status, generationIds,
                    costUsd, startedAt, completedAt, finalOutputs?, error?,
                    signature?

Retries follow the configured schedule (1s, 5s, 30s by default; 3 attempts).
Non-2xx replies and transport errors are retried; a timed-out attempt is
terminal.
"""

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from infrastructure.logging import bind_delivery_context, get_module_logger
from infrastructure.notifications.channels.base import ChannelNotifier, ContextInput
from infrastructure.notifications.channels.delivery import scoped_http_client
from infrastructure.notifications.exceptions import (
    NotificationConfigurationError,
    NotificationDeliveryError,
    WebhookTimeoutError,
)
from infrastructure.notifications.models import GenerationRecord, GenerationStatus
from infrastructure.notifications.normalizer import PayloadNormalizer
from infrastructure.notifications.utils import (
    SIGNATURE_FIELD,
    canonical_json,
    normalize_cost_usd,
    sign_webhook,
    signature_header,
    validate_webhook_url,
)
from infrastructure.services import get_settings

if TYPE_CHECKING:
    from infrastructure.clients.internal_api import InternalApiClient
    from infrastructure.configuration import Settings

logger = get_module_logger()

SleepFunc = Callable[[float], Awaitable[Any]]


def _identifier(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping) and "$oid" in value:
        return str(value["$oid"])
    return str(value)


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping) and "$date" in value:
        return str(value["$date"])
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class WebhookNotifier(ChannelNotifier):
    """Posts generation results to user-configured webhook URLs.

    Args:
        settings: Settings instance (defaults to the process settings)
        internal_api: Client used to look up spell cast records; without it
            every delivery uses the tool execution payload
        http_client: Optional shared AsyncClient for the POSTs
        normalizer: Optional PayloadNormalizer
        sleep: Awaitable used between attempts (tests inject a recorder)
    """

    def __init__(
        self,
        settings: Optional["Settings"] = None,
        internal_api: Optional["InternalApiClient"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        normalizer: Optional[PayloadNormalizer] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        settings = settings or get_settings()
        webhooks = settings.webhooks
        self._retry_delays = list(webhooks.WEBHOOK_RETRY_DELAYS_SECONDS)
        self._max_attempts = webhooks.WEBHOOK_MAX_ATTEMPTS
        self._timeout = webhooks.WEBHOOK_REQUEST_TIMEOUT_SECONDS
        self._user_agent = webhooks.WEBHOOK_USER_AGENT
        self._allow_private = settings.allow_private_webhook_urls
        self._internal_api = internal_api
        self._http_client = http_client
        self._normalizer = normalizer or PayloadNormalizer()
        self._sleep = sleep
        self._logger = logger.bind(component="webhook_notifier")

    @property
    def platform(self) -> str:
        return "webhook"

    async def send_notification(
        self,
        context: ContextInput,
        fallback_text: str,
        record: GenerationRecord,
    ) -> None:
        """Build, sign and POST the payload for one record.

        ``context`` and ``fallback_text`` are unused: the destination lives
        in the record metadata and the receiver gets structured JSON.
        """
        with bind_delivery_context(generation_id=record.id, platform=self.platform):
            webhook_url = record.metadata.webhook_url
            if not webhook_url:
                self._logger.error("webhook_url_missing")
                raise NotificationConfigurationError(
                    "Webhook URL not found in generation record metadata.webhookUrl"
                )
            webhook_url = validate_webhook_url(
                webhook_url, allow_private=self._allow_private
            )

            payload = await self.build_payload(record)
            status_code = await self._post_with_retry(webhook_url, payload)
            self._logger.info(
                "webhook_delivered",
                status_code=status_code,
                webhook_event=payload.get("event"),
            )

    async def build_payload(self, record: GenerationRecord) -> Dict[str, Any]:
        """Spell cast payload when the cast can be fetched, else tool payload."""
        cast_id = record.effective_cast_id
        secret = record.metadata.webhook_secret

        if cast_id and self._internal_api is not None:
            result = await self._internal_api.get_spell_cast(cast_id)
            if result.is_success and isinstance(result.data, Mapping):
                return self._sign(self.build_spell_cast_payload(result.data, record), secret)
            self._logger.warning(
                "spell_cast_lookup_failed",
                cast_id=cast_id,
                error=result.message,
                error_code=result.error_code,
                retryable=result.is_retryable,
            )

        return self._sign(self.build_tool_execution_payload(record), secret)

    def build_tool_execution_payload(self, record: GenerationRecord) -> Dict[str, Any]:
        outputs = PayloadNormalizer.to_web_format(
            self._normalizer.normalize(record.payload_source)
        )
        payload: Dict[str, Any] = {
            "event": "generation.completed"
            if record.is_completed
            else "generation.failed",
            "generationId": record.id,
            "toolId": record.tool_id,
            "status": record.status.value,
            "outputs": outputs,
            "costUsd": normalize_cost_usd(record.cost_usd),
            "timestamp": record.response_timestamp
            or datetime.now(timezone.utc).isoformat(),
        }

        if record.status == GenerationStatus.FAILED:
            payload["error"] = {
                "code": record.metadata.error_code or "GENERATION_FAILED",
                "message": record.metadata.error_message
                or _payload_error(record.response_payload)
                or "Generation failed",
            }
        return payload

    def build_spell_cast_payload(
        self, cast: Mapping[str, Any], record: GenerationRecord
    ) -> Dict[str, Any]:
        cast_metadata = cast.get("metadata") or {}
        status = cast.get("status")
        payload: Dict[str, Any] = {
            "event": "spell.completed" if status == "completed" else "spell.failed",
            "castId": _identifier(cast.get("_id") or cast.get("id"))
            or record.effective_cast_id,
            "spellId": _identifier(cast.get("spellId") or cast_metadata.get("spellId")),
            "spellSlug": cast_metadata.get("spellSlug"),
            "status": status,
            "generationIds": [
                _identifier(step_id) for step_id in cast.get("stepGenerationIds") or []
            ],
            "costUsd": normalize_cost_usd(cast.get("costUsd")),
            "startedAt": _timestamp(
                cast.get("startedAt") or cast_metadata.get("startedAt")
            ),
            "completedAt": _timestamp(
                cast.get("completedAt") or cast_metadata.get("completedAt")
            ),
        }

        if record.payload_source is not None:
            payload["finalOutputs"] = PayloadNormalizer.to_web_format(
                self._normalizer.normalize(record.payload_source)
            )

        if status == "failed":
            payload["error"] = {
                "code": cast_metadata.get("errorCode") or "SPELL_FAILED",
                "message": cast_metadata.get("failureReason")
                or cast_metadata.get("errorMessage")
                or "Spell execution failed",
            }
        return payload

    @staticmethod
    def _sign(payload: Dict[str, Any], secret: Optional[str]) -> Dict[str, Any]:
        if secret:
            payload[SIGNATURE_FIELD] = sign_webhook(payload, secret)
        return payload

    def _headers(self, payload: Mapping[str, Any]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
        }
        if payload.get(SIGNATURE_FIELD):
            headers.update(signature_header(payload[SIGNATURE_FIELD]))
        return headers

    def _delay_after(self, attempt: int) -> float:
        return self._retry_delays[min(attempt, len(self._retry_delays) - 1)]

    async def _post_with_retry(self, url: str, payload: Mapping[str, Any]) -> int:
        """POST the payload, retrying per the schedule.

        Returns:
            HTTP status code of the successful attempt

        Raises:
            WebhookTimeoutError: an attempt exceeded its deadline
            NotificationDeliveryError: every attempt failed
        """
        body = canonical_json(payload).encode("utf-8")
        headers = self._headers(payload)
        last_error: Optional[NotificationDeliveryError] = None

        async with scoped_http_client(self._http_client, follow_redirects=False) as client:
            for attempt in range(self._max_attempts):
                try:
                    response = await asyncio.wait_for(
                        client.post(
                            url, content=body, headers=headers, timeout=self._timeout
                        ),
                        timeout=self._timeout,
                    )
                except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                    self._logger.error(
                        "webhook_request_timeout",
                        attempt=attempt + 1,
                        timeout_seconds=self._timeout,
                    )
                    raise WebhookTimeoutError(
                        f"Webhook request timeout after {self._timeout:g}s"
                    ) from exc
                except httpx.InvalidURL as exc:
                    raise NotificationConfigurationError(
                        f"Invalid webhook URL: {exc}"
                    ) from exc
                except httpx.HTTPError as exc:
                    last_error = NotificationDeliveryError(
                        f"Webhook request failed: {type(exc).__name__}: {exc}"
                    )
                else:
                    if response.is_success:
                        return response.status_code
                    last_error = NotificationDeliveryError(
                        f"Webhook returned {response.status_code}: {response.text[:200]}",
                        status_code=response.status_code,
                        response_body=response.text,
                    )

                if attempt < self._max_attempts - 1:
                    delay = self._delay_after(attempt)
                    self._logger.warning(
                        "webhook_delivery_attempt_failed",
                        attempt=attempt + 1,
                        max_attempts=self._max_attempts,
                        retry_in_seconds=delay,
                        error=str(last_error),
                    )
                    await self._sleep(delay)

        self._logger.error(
            "webhook_delivery_exhausted",
            attempts=self._max_attempts,
            error=str(last_error),
        )
        raise last_error


def _payload_error(payload: Any) -> Optional[str]:
    if isinstance(payload, Mapping) and isinstance(payload.get("error"), str):
        return payload["error"]
    return None
