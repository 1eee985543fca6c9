"""Unit tests for notification delivery models."""

import pytest
from pydantic import ValidationError

from infrastructure.notifications.models import (
    CanonicalOutputItem,
    GenerationRecord,
    GenerationStatus,
    NotificationContext,
    OutputType,
)


@pytest.mark.unit
class TestGenerationRecord:
    """Tests for parsing internal API generation documents."""

    def test_wire_document_parses(self, record_factory):
        record = record_factory()

        assert record.id == "gen-123"
        assert record.status == GenerationStatus.COMPLETED
        assert record.is_completed
        assert record.notification_platform == "telegram"
        assert record.metadata.display_name == "Flux Dev"
        assert record.metadata.notification_context.chat_id == 12345

    def test_object_id_wrappers_are_unwrapped(self):
        record = GenerationRecord.model_validate(
            {
                "_id": {"$oid": "665f00000000000000000001"},
                "status": "completed",
                "castId": {"$oid": "665f00000000000000000002"},
            }
        )

        assert record.id == "665f00000000000000000001"
        assert record.effective_cast_id == "665f00000000000000000002"

    def test_status_is_case_insensitive(self):
        record = GenerationRecord.model_validate({"_id": "g", "status": " FAILED "})
        assert record.status == GenerationStatus.FAILED
        assert not record.is_completed

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            GenerationRecord.model_validate({"_id": "g", "status": "exploded"})

    def test_cast_id_falls_back_to_metadata(self, record_factory):
        record = record_factory(metadata={"castId": "cast-9"})
        assert record.effective_cast_id == "cast-9"

    def test_payload_source_prefers_response_payload(self, record_factory):
        assert record_factory(outputs=["legacy"]).payload_source == [
            {"data": {"text": ["hello"]}}
        ]
        assert record_factory(responsePayload=None, outputs=["legacy"]).payload_source == [
            "legacy"
        ]

    def test_malformed_rerun_count_is_zero(self, record_factory):
        assert record_factory(metadata={"rerunCount": "many"}).metadata.rerun_count == 0
        assert record_factory(metadata={"rerunCount": "2"}).metadata.rerun_count == 2

    def test_date_wrapper_timestamp(self, record_factory):
        record = record_factory(responseTimestamp={"$date": "2024-05-01T00:00:00Z"})
        assert record.response_timestamp == "2024-05-01T00:00:00Z"

    def test_unknown_keys_are_preserved(self, record_factory):
        record = record_factory(requestPayload={"prompt": "cat"})
        assert record.model_extra["requestPayload"] == {"prompt": "cat"}

    def test_webhook_secret_hidden_from_repr(self, record_factory):
        record = record_factory(metadata={"webhookSecret": "shh"})
        assert "shh" not in repr(record.metadata)

    def test_non_dict_delivery_hints_are_dropped(self, record_factory):
        record = record_factory(
            metadata={"deliveryHints": {"telegram": {"send-as": "document"}, "x": 1}}
        )
        assert record.metadata.delivery_hints == {"telegram": {"send-as": "document"}}


@pytest.mark.unit
class TestNotificationContext:
    @pytest.mark.parametrize(
        "document",
        [
            {"chatId": "-100", "userId": 5, "messageId": 9},
            {"channelId": "-100", "user_id": 5, "replyToMessageId": 9},
            {"chat_id": "-100", "userId": 5, "message_id": 9},
        ],
    )
    def test_aliases(self, document):
        context = NotificationContext.model_validate(document)

        assert context.chat_id == "-100"
        assert context.user_id == 5
        assert context.message_id == 9


@pytest.mark.unit
class TestCanonicalOutputItem:
    def test_items_are_frozen(self):
        item = CanonicalOutputItem(type=OutputType.TEXT, text="a")
        with pytest.raises(ValidationError):
            item.text = "b"

    def test_text_file_detection(self):
        assert CanonicalOutputItem(type=OutputType.TEXT, url="https://x/a.txt").is_text_file
        assert not CanonicalOutputItem(type=OutputType.TEXT, text="a").is_text_file

    def test_media_kinds(self):
        assert OutputType.IMAGE.is_media
        assert OutputType.DOCUMENT.is_media
        assert not OutputType.TEXT.is_media
