"""Shared delivery helpers for the chat channel notifiers.

Plain functions composed by each chat notifier: building the delivery plan
from a record, fetching media, deduplicating and splitting text, and
grouping photos into media-group batches. Nothing here keeps state between
calls.
"""

import asyncio
import posixpath
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import MediaFetchError
from infrastructure.notifications.models import (
    GenerationMetadata,
    GenerationRecord,
    OutputType,
)
from infrastructure.notifications.normalizer import PayloadNormalizer

logger = get_module_logger()

DEFAULT_DOCUMENT_FILENAME = "output.png"
DEFAULT_FILENAMES = {
    OutputType.IMAGE: "image.png",
    OutputType.VIDEO: "video.mp4",
    OutputType.ANIMATION: "animation.gif",
    OutputType.DOCUMENT: "file.bin",
}
TEXT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class PlannedMedia:
    """One media item as it will be sent: kind after hints, URL, filename."""

    kind: OutputType
    url: str
    filename: Optional[str] = None

    @property
    def is_photo(self) -> bool:
        return self.kind == OutputType.IMAGE

    @property
    def is_document(self) -> bool:
        return self.kind == OutputType.DOCUMENT


@dataclass(frozen=True)
class FetchedMedia:
    """A planned item with its downloaded bytes."""

    item: PlannedMedia
    data: bytes
    filename: str


@dataclass
class DeliveryPlan:
    """Everything one chat notification will send, in order."""

    texts: List[str] = field(default_factory=list)
    media: List[PlannedMedia] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.texts and not self.media

    @property
    def joined_text(self) -> str:
        return TEXT_SEPARATOR.join(self.texts)


@asynccontextmanager
async def scoped_http_client(
    http_client: Optional[httpx.AsyncClient],
    follow_redirects: bool = True,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client, or a short-lived one when none was injected."""
    if http_client is not None:
        yield http_client
        return
    async with httpx.AsyncClient(follow_redirects=follow_redirects) as client:
        yield client


def resolve_delivery_hints(
    metadata: GenerationMetadata, platforms: Sequence[str]
) -> Dict[str, object]:
    """First non-empty ``deliveryHints`` entry among ``platforms``."""
    for platform in platforms:
        hints = metadata.delivery_hints.get(platform)
        if hints:
            return hints
    return {}


def dedupe_texts(texts: Sequence[str]) -> List[str]:
    """Drop blank texts and exact repeats (compared after trimming)."""
    seen = set()
    unique = []
    for text in texts:
        key = text.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(text)
    return unique


def split_text(text: str, max_length: int) -> List[str]:
    """Split text into chunks of at most ``max_length`` characters.

    Cuts prefer the last newline, then the last space, inside the window.
    """
    if max_length < 1:
        raise ValueError("max_length must be positive")

    chunks = []
    remaining = text
    while len(remaining) > max_length:
        cut = remaining.rfind("\n", 0, max_length + 1)
        if cut <= 0:
            cut = remaining.rfind(" ", 0, max_length + 1)
        if cut <= 0:
            cut = max_length
        chunk = remaining[:cut]
        remaining = remaining[cut:]
        if remaining[:1] in ("\n", " "):
            remaining = remaining[1:]
        if chunk.strip():
            chunks.append(chunk)
    if remaining.strip():
        chunks.append(remaining)
    return chunks


def media_filename(item: PlannedMedia) -> str:
    """Filename to upload under: explicit, from the URL path, or a default."""
    if item.filename:
        return item.filename
    try:
        name = posixpath.basename(unquote(urlparse(item.url).path))
    except ValueError:
        name = ""
    if name and "." in name:
        return name
    return DEFAULT_FILENAMES[item.kind]


async def fetch_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """Download one URL into memory.

    Raises:
        MediaFetchError: on a non-2xx reply, a transport failure or a URL
            httpx cannot parse
    """
    try:
        response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise MediaFetchError(url, f"Failed to fetch {url}: {exc}") from exc
    if not response.is_success:
        raise MediaFetchError(
            url,
            f"Failed to fetch {url}: HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return response.content


async def fetch_media(
    client: httpx.AsyncClient, items: Sequence[PlannedMedia]
) -> List[FetchedMedia]:
    """Fetch several items concurrently, preserving order.

    The first failure cancels the downloads still in flight and is raised
    as is.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(fetch_bytes(client, item.url)) for item in items]
    except ExceptionGroup as failures:
        raise failures.exceptions[0] from None
    return [
        FetchedMedia(item=item, data=task.result(), filename=media_filename(item))
        for item, task in zip(items, tasks)
    ]


async def fetch_text_file(client: httpx.AsyncClient, url: str) -> Optional[str]:
    """Download a text output. Failures are logged and yield None."""
    try:
        data = await fetch_bytes(client, url)
    except MediaFetchError as exc:
        logger.warning("text_file_fetch_failed", url=url, error=str(exc))
        return None
    return data.decode("utf-8", errors="replace")


async def build_delivery_plan(
    record: GenerationRecord,
    normalizer: PayloadNormalizer,
    client: httpx.AsyncClient,
    hint_platforms: Sequence[str],
) -> DeliveryPlan:
    """Normalize a record and decide how each output will be sent.

    Remote text files are fetched and appended to the texts. An image is
    switched to a document when the platform's delivery hints say
    ``send-as: document``, using the hinted filename.
    """
    items = normalizer.normalize(record.payload_source)

    texts = PayloadNormalizer.extract_text(items)
    for text_file in PayloadNormalizer.extract_text_files(items):
        content = await fetch_text_file(client, text_file.url)
        if content:
            texts.append(content)

    hints = resolve_delivery_hints(record.metadata, hint_platforms)
    send_as_document = hints.get("send-as") == "document"
    suggested_filename = hints.get("filename") or DEFAULT_DOCUMENT_FILENAME

    media = []
    for item in PayloadNormalizer.extract_media(items):
        if item.type == OutputType.IMAGE and send_as_document:
            media.append(
                PlannedMedia(
                    kind=OutputType.DOCUMENT, url=item.url, filename=suggested_filename
                )
            )
        else:
            media.append(PlannedMedia(kind=item.type, url=item.url, filename=item.filename))

    return DeliveryPlan(texts=dedupe_texts(texts), media=media)


def group_media(
    media: Sequence[PlannedMedia],
    group_limit: int,
    split_last_photo: bool = False,
) -> List[List[PlannedMedia]]:
    """Arrange media into send steps.

    Each step is a list: one item means an individual send, several items
    mean one media-group send. When two or more photos are present they are
    all batched (in chunks of ``group_limit``) at the position of the first
    photo; other items keep their own positions. With ``split_last_photo``
    the final photo of a trailing batch is detached into its own step so it
    can carry reply controls.
    """
    photos = [item for item in media if item.is_photo]
    if len(photos) < 2:
        return [[item] for item in media]

    steps: List[List[PlannedMedia]] = []
    photos_placed = False
    for item in media:
        if not item.is_photo:
            steps.append([item])
            continue
        if photos_placed:
            continue
        photos_placed = True
        for start in range(0, len(photos), group_limit):
            steps.append(photos[start : start + group_limit])

    if split_last_photo and len(steps[-1]) > 1:
        last_batch = steps.pop()
        steps.append(last_batch[:-1])
        steps.append(last_batch[-1:])

    return steps
