"""Notification delivery core models.

Platform-agnostic models for generation result delivery. Records arrive from
the internal API as camelCase JSON documents; every model accepts both the
wire (camelCase) and the Python (snake_case) field names.

Uses Pydantic BaseModel for:
- Tolerant parsing of the internal API documents (unknown keys kept)
- Runtime validation of delivery contexts
- Type safety with proper error messages
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def _coerce_identifier(value: Any) -> Any:
    """Unwrap ObjectId-like wrappers ({"$oid": "..."}) and stringify ids."""
    if value is None:
        return None
    if isinstance(value, dict) and "$oid" in value:
        return str(value["$oid"])
    return str(value)


class GenerationStatus(str, Enum):
    """Lifecycle status of a generation record."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class OutputType(str, Enum):
    """Kinds of deliverable content produced by the payload normalizer.

    ``TEXT`` items carry inline ``text``; a ``TEXT`` item carrying only a
    ``url`` is a remote text file whose contents are inlined at delivery.
    """

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    ANIMATION = "animation"
    DOCUMENT = "document"

    @property
    def is_media(self) -> bool:
        return self is not OutputType.TEXT


class CanonicalOutputItem(BaseModel):
    """One piece of deliverable content, in generation order.

    Attributes:
        type: Kind of content
        url: Remote location for media items and text files
        text: Inline text for text items
        filename: Original or suggested filename
        format: MIME-like format string (e.g. ``video/mp4``)

    Example:
        CanonicalOutputItem(type=OutputType.IMAGE, url="https://cdn/x.png")
    """

    model_config = ConfigDict(frozen=True)

    type: OutputType
    url: Optional[str] = None
    text: Optional[str] = None
    filename: Optional[str] = None
    format: Optional[str] = None

    @property
    def is_text_file(self) -> bool:
        """True for remote text files that must be fetched and inlined."""
        return self.type == OutputType.TEXT and self.text is None and bool(self.url)

    def to_web_dict(self) -> Dict[str, Any]:
        """Dict projection without unset fields, for JSON consumers."""
        return self.model_dump(mode="json", exclude_none=True)


class NotificationContext(BaseModel):
    """Caller-supplied addressing for one chat delivery.

    Attributes:
        chat_id: Destination chat or channel identifier
        user_id: Requesting user, used for private document delivery
        message_id: Original message to reply to, when known
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    chat_id: Optional[Union[int, str]] = Field(
        default=None,
        validation_alias=AliasChoices("chat_id", "chatId", "channelId", "channel_id"),
    )
    user_id: Optional[Union[int, str]] = Field(
        default=None, validation_alias=AliasChoices("user_id", "userId")
    )
    message_id: Optional[Union[int, str]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "message_id", "messageId", "replyToMessageId", "reply_to_message_id"
        ),
    )


class GenerationMetadata(BaseModel):
    """Delivery-relevant subset of a generation record's metadata.

    Unknown keys are preserved so nothing the execution subsystem stores is
    lost when a record is re-serialized.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    delivery_hints: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("delivery_hints", "deliveryHints"),
    )
    rerun_count: int = Field(
        default=0, validation_alias=AliasChoices("rerun_count", "rerunCount")
    )
    webhook_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("webhook_url", "webhookUrl")
    )
    webhook_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("webhook_secret", "webhookSecret"),
        repr=False,
    )
    error_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("error_code", "errorCode")
    )
    error_message: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("error_message", "errorMessage")
    )
    cast_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cast_id", "castId")
    )
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("display_name", "displayName")
    )
    notification_context: Optional[NotificationContext] = Field(
        default=None,
        validation_alias=AliasChoices("notification_context", "notificationContext"),
    )

    @field_validator("rerun_count", mode="before")
    @classmethod
    def coerce_rerun_count(cls, v: Any) -> int:
        """Treat missing or malformed counts as zero."""
        try:
            return int(v or 0)
        except (TypeError, ValueError):
            return 0

    @field_validator("cast_id", mode="before")
    @classmethod
    def coerce_cast_id(cls, v: Any) -> Optional[str]:
        return _coerce_identifier(v)

    @field_validator("delivery_hints", mode="before")
    @classmethod
    def coerce_delivery_hints(cls, v: Any) -> Dict[str, Dict[str, Any]]:
        if not isinstance(v, dict):
            return {}
        return {k: hints for k, hints in v.items() if isinstance(hints, dict)}


class GenerationRecord(BaseModel):
    """A finished (or failed) generation, read once for delivery.

    The delivery pipeline never mutates a record; bookkeeping is written back
    through the internal API by the dispatcher.

    Example:
        record = GenerationRecord.model_validate(
            {"_id": "abc", "status": "completed", "responsePayload": [...]}
        )
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("id", "_id", "generationId")
    )
    status: GenerationStatus
    response_payload: Any = Field(
        default=None,
        validation_alias=AliasChoices("response_payload", "responsePayload"),
    )
    outputs: Optional[List[Any]] = None
    cost_usd: Any = Field(
        default=None, validation_alias=AliasChoices("cost_usd", "costUsd")
    )
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)
    notification_platform: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("notification_platform", "notificationPlatform"),
    )
    tool_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("tool_id", "toolId")
    )
    cast_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cast_id", "castId")
    )
    service_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("service_name", "serviceName")
    )
    status_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("status_reason", "statusReason")
    )
    response_timestamp: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("response_timestamp", "responseTimestamp"),
    )
    delivery_attempts: int = Field(
        default=0,
        validation_alias=AliasChoices("delivery_attempts", "deliveryAttempts"),
    )

    @field_validator("id", "cast_id", "tool_id", mode="before")
    @classmethod
    def coerce_identifiers(cls, v: Any) -> Optional[str]:
        return _coerce_identifier(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("response_timestamp", mode="before")
    @classmethod
    def stringify_timestamp(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if hasattr(v, "isoformat"):
            return v.isoformat()
        if isinstance(v, dict) and "$date" in v:
            return str(v["$date"])
        return str(v)

    @property
    def is_completed(self) -> bool:
        return self.status == GenerationStatus.COMPLETED

    @property
    def effective_cast_id(self) -> Optional[str]:
        """Cast id from the record itself or, failing that, its metadata."""
        return self.cast_id or self.metadata.cast_id

    @property
    def payload_source(self) -> Any:
        """The raw payload to normalize, falling back to legacy ``outputs``."""
        if self.response_payload is not None:
            return self.response_payload
        return self.outputs
