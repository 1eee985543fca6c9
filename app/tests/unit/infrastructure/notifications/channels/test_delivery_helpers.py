"""Unit tests for the shared chat delivery helpers."""

import asyncio

import httpx
import pytest

from infrastructure.notifications.channels.delivery import (
    PlannedMedia,
    build_delivery_plan,
    dedupe_texts,
    fetch_bytes,
    fetch_media,
    group_media,
    media_filename,
    resolve_delivery_hints,
    split_text,
)
from infrastructure.notifications.exceptions import MediaFetchError
from infrastructure.notifications.models import GenerationMetadata, OutputType
from infrastructure.notifications.normalizer import PayloadNormalizer


def photo(name):
    return PlannedMedia(kind=OutputType.IMAGE, url=f"https://cdn.test/{name}.png")


def video(name):
    return PlannedMedia(kind=OutputType.VIDEO, url=f"https://cdn.test/{name}.mp4")


@pytest.mark.unit
class TestDedupeTexts:
    def test_drops_blank_and_repeated_texts(self):
        assert dedupe_texts(["a", " a ", "", "b", "  ", "a"]) == ["a", "b"]

    def test_keeps_order(self):
        assert dedupe_texts(["z", "y", "z", "x"]) == ["z", "y", "x"]


@pytest.mark.unit
class TestSplitText:
    def test_short_text_is_one_chunk(self):
        assert split_text("hello", 10) == ["hello"]

    def test_empty_text_has_no_chunks(self):
        assert split_text("", 10) == []

    def test_prefers_newline(self):
        assert split_text("ab cd\nef gh", 8) == ["ab cd", "ef gh"]

    def test_falls_back_to_space(self):
        assert split_text("aaaa bbbb", 5) == ["aaaa", "bbbb"]

    def test_hard_cut_without_separators(self):
        assert split_text("x" * 12, 5) == ["xxxxx", "xxxxx", "xx"]

    def test_chunks_never_exceed_limit(self):
        text = " ".join(f"word{i}" for i in range(500)) + "\n" + "tail " * 50

        chunks = split_text(text, 100)

        assert all(len(chunk) <= 100 for chunk in chunks)
        assert "".join(chunks).replace(" ", "").replace("\n", "") == text.replace(
            " ", ""
        ).replace("\n", "")

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            split_text("text", 0)


@pytest.mark.unit
class TestGroupMedia:
    def test_single_photo_is_sent_alone(self):
        items = [photo("a"), video("v")]
        assert group_media(items, 10) == [[photo("a")], [video("v")]]

    def test_photos_batch_at_first_photo_position(self):
        items = [video("v1"), photo("a"), video("v2"), photo("b"), photo("c")]

        steps = group_media(items, 10)

        assert steps == [
            [video("v1")],
            [photo("a"), photo("b"), photo("c")],
            [video("v2")],
        ]

    def test_batches_respect_group_limit(self):
        items = [photo(str(i)) for i in range(5)]

        steps = group_media(items, 2)

        assert [len(step) for step in steps] == [2, 2, 1]

    def test_split_last_photo_for_controls(self):
        items = [video("v"), photo("a"), photo("b"), photo("c")]

        steps = group_media(items, 10, split_last_photo=True)

        assert steps == [[video("v")], [photo("a"), photo("b")], [photo("c")]]

    def test_split_not_needed_when_last_step_is_single(self):
        items = [photo("a"), photo("b"), photo("c")]

        steps = group_media(items, 2, split_last_photo=True)

        assert steps == [[photo("a"), photo("b")], [photo("c")]]


@pytest.mark.unit
class TestMediaFilename:
    def test_explicit_filename_wins(self):
        item = PlannedMedia(kind=OutputType.DOCUMENT, url="https://x.test/a.bin", filename="out.png")
        assert media_filename(item) == "out.png"

    def test_filename_from_url(self):
        item = PlannedMedia(kind=OutputType.IMAGE, url="https://x.test/dir/my%20pic.png?sig=1")
        assert media_filename(item) == "my pic.png"

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (OutputType.IMAGE, "image.png"),
            (OutputType.VIDEO, "video.mp4"),
            (OutputType.ANIMATION, "animation.gif"),
            (OutputType.DOCUMENT, "file.bin"),
        ],
    )
    def test_default_by_kind(self, kind, expected):
        assert media_filename(PlannedMedia(kind=kind, url="https://x.test/download")) == expected


@pytest.mark.unit
class TestResolveDeliveryHints:
    def test_first_non_empty_platform_wins(self):
        metadata = GenerationMetadata.model_validate(
            {"deliveryHints": {"discord": {}, "telegram": {"send-as": "document"}}}
        )

        assert resolve_delivery_hints(metadata, ("discord", "telegram")) == {
            "send-as": "document"
        }

    def test_no_hints(self):
        assert resolve_delivery_hints(GenerationMetadata(), ("telegram",)) == {}


@pytest.mark.unit
class TestFetchBytes:
    @pytest.mark.asyncio
    async def test_returns_content(self, media_client_factory):
        client = media_client_factory({"https://cdn.test/a.png": b"png"})
        assert await fetch_bytes(client, "https://cdn.test/a.png") == b"png"

    @pytest.mark.asyncio
    async def test_http_error_raises_media_fetch_error(self, media_client_factory):
        client = media_client_factory({"https://cdn.test/gone.png": None})

        with pytest.raises(MediaFetchError) as exc_info:
            await fetch_bytes(client, "https://cdn.test/gone.png")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://cdn.test/gone.png"

    @pytest.mark.asyncio
    async def test_unparseable_url_raises_media_fetch_error(self, media_client_factory):
        requests = []
        client = media_client_factory(requests=requests)

        with pytest.raises(MediaFetchError) as exc_info:
            await fetch_bytes(client, "https://cdn.test:abc/a.png")

        assert exc_info.value.url == "https://cdn.test:abc/a.png"
        assert exc_info.value.status_code is None
        assert requests == []


@pytest.mark.unit
class TestFetchMedia:
    @pytest.mark.asyncio
    async def test_preserves_order(self, media_client_factory):
        client = media_client_factory(
            {"https://cdn.test/a.png": b"a", "https://cdn.test/v.mp4": b"v"}
        )

        fetched = await fetch_media(client, [photo("a"), video("v")])

        assert [item.data for item in fetched] == [b"a", b"v"]
        assert [item.filename for item in fetched] == ["a.png", "v.mp4"]

    @pytest.mark.asyncio
    async def test_first_failure_cancels_pending_downloads(self):
        cancelled = []
        slow_started = asyncio.Event()

        async def handler(request):
            if request.url.path == "/gone.png":
                await slow_started.wait()
                return httpx.Response(404)
            slow_started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(str(request.url))
                raise

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        with pytest.raises(MediaFetchError) as exc_info:
            await fetch_media(client, [video("slow"), photo("gone")])

        assert exc_info.value.status_code == 404
        assert cancelled == ["https://cdn.test/slow.mp4"]


@pytest.mark.unit
class TestBuildDeliveryPlan:
    @pytest.mark.asyncio
    async def test_inlines_text_files_and_dedupes(self, record_factory, media_client_factory):
        record = record_factory(
            responsePayload=[
                {
                    "data": {
                        "text": ["caption", "caption "],
                        "files": [
                            {"url": "https://cdn.test/notes.txt"},
                            {"url": "https://cdn.test/broken.txt"},
                        ],
                        "images": ["https://cdn.test/a.png"],
                    }
                }
            ]
        )
        client = media_client_factory(
            {
                "https://cdn.test/notes.txt": "from file",
                "https://cdn.test/broken.txt": None,
            }
        )

        plan = await build_delivery_plan(record, PayloadNormalizer(), client, ("telegram",))

        assert plan.texts == ["caption", "from file"]
        assert plan.media == [PlannedMedia(kind=OutputType.IMAGE, url="https://cdn.test/a.png")]
        assert plan.joined_text == "caption\n\nfrom file"

    @pytest.mark.asyncio
    async def test_skips_text_file_with_unparseable_url(self, record_factory, media_client_factory):
        record = record_factory(
            responsePayload={
                "text": "caption",
                "files": [{"url": "https://cdn.test:abc/notes.txt"}],
            }
        )

        plan = await build_delivery_plan(
            record, PayloadNormalizer(), media_client_factory(), ("telegram",)
        )

        assert plan.texts == ["caption"]
        assert plan.media == []

    @pytest.mark.asyncio
    async def test_send_as_document_hint(self, record_factory, media_client_factory):
        record = record_factory(
            responsePayload={"images": ["https://cdn.test/a.png"], "files": ["https://cdn.test/c.mp4"]},
            metadata={"deliveryHints": {"telegram": {"send-as": "document", "filename": "final.png"}}},
        )

        plan = await build_delivery_plan(
            record, PayloadNormalizer(), media_client_factory(), ("telegram",)
        )

        assert plan.media == [
            PlannedMedia(kind=OutputType.DOCUMENT, url="https://cdn.test/a.png", filename="final.png"),
            PlannedMedia(kind=OutputType.VIDEO, url="https://cdn.test/c.mp4"),
        ]

    @pytest.mark.asyncio
    async def test_send_as_document_default_filename(self, record_factory, media_client_factory):
        record = record_factory(
            responsePayload={"images": ["https://cdn.test/a.png"]},
            metadata={"deliveryHints": {"telegram": {"send-as": "document"}}},
        )

        plan = await build_delivery_plan(
            record, PayloadNormalizer(), media_client_factory(), ("telegram",)
        )

        assert plan.media[0].filename == "output.png"

    @pytest.mark.asyncio
    async def test_empty_payload(self, record_factory, media_client_factory):
        record = record_factory(responsePayload=None)

        plan = await build_delivery_plan(
            record, PayloadNormalizer(), media_client_factory(), ("telegram",)
        )

        assert plan.is_empty
