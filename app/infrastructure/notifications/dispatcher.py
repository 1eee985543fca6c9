"""Delivery dispatcher with per-platform routing and status bookkeeping.

Selects the channel notifier for each finished generation record, builds the
human-readable fallback message, invokes the notifier, and writes the
outcome back to the record through the internal API:

- delivered -> ``deliveryStatus: sent`` with timestamp and attempt count
- configuration error -> ``deliveryStatus: failed`` (never retried)
- other errors -> attempt count and error; ``dropped`` once attempts run out
- no notifier for the platform -> ``deliveryStatus: dropped``

Usage Example:
    from infrastructure.notifications import DeliveryDispatcher

    dispatcher = DeliveryDispatcher(
        notifiers={"telegram": telegram_notifier, "webhook": webhook_notifier},
        internal_api=internal_api,
    )

    result = await dispatcher.dispatch(record)
    if not result.is_success:
        logger.warning("delivery_not_completed", error_code=result.error_code)
"""

import asyncio
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Union,
)

from pydantic import ValidationError

from infrastructure.logging import bind_delivery_context, get_module_logger
from infrastructure.notifications.channels.base import ChannelNotifier
from infrastructure.notifications.exceptions import NotificationConfigurationError
from infrastructure.notifications.models import GenerationRecord
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.clients.internal_api import InternalApiClient

logger = get_module_logger()

DELIVERY_SENT = "sent"
DELIVERY_FAILED = "failed"
DELIVERY_DROPPED = "dropped"

RecordInput = Union[GenerationRecord, Mapping[str, Any]]


def build_fallback_message(record: GenerationRecord) -> str:
    """Plain-text summary sent when rich delivery is impossible or the job failed."""
    if record.is_completed:
        name = record.metadata.display_name or record.service_name
        return f"Your '{name}' job (ID: {record.id}) completed successfully!"
    reason = record.status_reason or "Unknown error"
    return (
        f"Your job for workflow '{record.service_name}' (ID: {record.id}) "
        f"failed. Reason: {reason}"
    )


class DeliveryDispatcher:
    """Routes generation records to channel notifiers.

    Dispatches are independent: the dispatcher keeps no per-record state, so
    records can be dispatched concurrently.

    Attributes:
        notifiers: Dict mapping platform name to ChannelNotifier instance
        internal_api: Client used for delivery status updates (optional)
        max_delivery_attempts: Attempts before a record is dropped
    """

    def __init__(
        self,
        notifiers: Dict[str, ChannelNotifier],
        internal_api: Optional["InternalApiClient"] = None,
        max_delivery_attempts: int = 3,
    ) -> None:
        if max_delivery_attempts < 1:
            raise ValueError("max_delivery_attempts must be at least 1")
        self.notifiers = notifiers
        self.internal_api = internal_api
        self.max_delivery_attempts = max_delivery_attempts

        logger.info(
            "initialized_delivery_dispatcher",
            platforms=list(notifiers.keys()),
            status_updates_enabled=internal_api is not None,
            max_delivery_attempts=max_delivery_attempts,
        )

    async def dispatch(self, record: RecordInput) -> OperationResult:
        """Deliver one record and record the outcome.

        Args:
            record: GenerationRecord or the raw internal API document

        Returns:
            OperationResult: SUCCESS when delivered, TRANSIENT_ERROR when a
            later retry may succeed, PERMANENT_ERROR otherwise
        """
        if not isinstance(record, GenerationRecord):
            try:
                record = GenerationRecord.model_validate(dict(record))
            except ValidationError as exc:
                logger.warning("invalid_generation_record", error=str(exc))
                return OperationResult.permanent_error(
                    f"Invalid generation record: {exc.error_count()} validation errors",
                    error_code="INVALID_RECORD",
                )

        if not record.id:
            logger.warning("generation_record_missing_id")
            return OperationResult.permanent_error(
                "Generation record has no id", error_code="MISSING_ID"
            )

        platform = record.notification_platform
        with bind_delivery_context(generation_id=record.id, platform=platform):
            notifier = self.notifiers.get(platform) if platform else None
            if notifier is None:
                logger.warning("notifier_not_available", platform=platform)
                await self._update_status(
                    record.id,
                    {
                        "deliveryStatus": DELIVERY_DROPPED,
                        "deliveryError": f"No notifier registered for platform '{platform}'",
                    },
                )
                return OperationResult.permanent_error(
                    f"No notifier registered for platform '{platform}'",
                    error_code="NO_NOTIFIER",
                )

            return await self._deliver(notifier, record)

    async def _deliver(
        self, notifier: ChannelNotifier, record: GenerationRecord
    ) -> OperationResult:
        attempts = record.delivery_attempts + 1
        message = build_fallback_message(record)

        try:
            await notifier.send_notification(
                record.metadata.notification_context, message, record
            )
        except NotificationConfigurationError as exc:
            logger.error(
                "notification_configuration_error",
                error=str(exc),
                attempt=attempts,
            )
            await self._update_status(
                record.id,
                {
                    "deliveryStatus": DELIVERY_FAILED,
                    "deliveryError": str(exc),
                    "deliveryAttempts": attempts,
                },
            )
            return OperationResult.permanent_error(
                str(exc), error_code="CONFIGURATION_ERROR"
            )
        except Exception as exc:
            logger.error(
                "notification_delivery_error",
                error=str(exc),
                error_type=type(exc).__name__,
                attempt=attempts,
                exc_info=True,
            )
            updates: Dict[str, Any] = {
                "deliveryAttempts": attempts,
                "deliveryError": str(exc),
            }
            if attempts >= self.max_delivery_attempts:
                logger.warning(
                    "delivery_attempts_exhausted",
                    max_delivery_attempts=self.max_delivery_attempts,
                )
                updates["deliveryStatus"] = DELIVERY_DROPPED
                await self._update_status(record.id, updates)
                return OperationResult.permanent_error(
                    f"Delivery dropped after {attempts} attempts: {exc}",
                    error_code="DELIVERY_DROPPED",
                )
            await self._update_status(record.id, updates)
            return OperationResult.transient_error(
                f"Delivery attempt {attempts} failed: {exc}",
                error_code="DELIVERY_FAILED",
            )

        logger.info("notification_dispatched", attempt=attempts)
        await self._update_status(
            record.id,
            {
                "deliveryStatus": DELIVERY_SENT,
                "deliveryTimestamp": datetime.now(timezone.utc).isoformat(),
                "deliveryAttempts": attempts,
            },
        )
        return OperationResult.success(
            data={"generation_id": record.id, "platform": record.notification_platform},
            message="Notification delivered",
        )

    async def dispatch_many(self, records: Iterable[RecordInput]) -> List[OperationResult]:
        """Dispatch several records concurrently; one failure never affects another."""
        outcomes = await asyncio.gather(
            *(self.dispatch(record) for record in records), return_exceptions=True
        )
        results = []
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error(
                    "dispatch_exception",
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                results.append(
                    OperationResult.transient_error(
                        f"Dispatch raised: {outcome}", error_code="DISPATCH_EXCEPTION"
                    )
                )
            else:
                results.append(outcome)

        logger.info(
            "dispatch_batch_completed",
            total=len(results),
            success_count=sum(1 for r in results if r.is_success),
        )
        return results

    async def _update_status(self, generation_id: str, updates: Dict[str, Any]) -> None:
        """Write delivery bookkeeping; failures are logged, never raised."""
        if self.internal_api is None:
            return
        result = await self.internal_api.update_generation(generation_id, updates)
        if not result.is_success:
            logger.error(
                "delivery_status_update_failed",
                updates=sorted(updates.keys()),
                error=result.message,
                error_code=result.error_code,
                retryable=result.is_retryable,
            )
