"""Response payload normalization.

Tools and services report results in many historical shapes. The
PayloadNormalizer parses each shape into one ordered list of
CanonicalOutputItem so every channel renders the same content in the same
order, whatever produced it.

Accepted shapes:
    - ``None`` (nothing to deliver)
    - a bare string
    - a list of segments ``{"data": {"text": [...], "images": [...], "files": [...]}}``
    - a list of legacy entries ``{"url": ..., "format"?: ..., "filename"?: ...}``
    - a list of already-canonical items (model instances or ``{"type", "url"|"text"}``)
    - an object with root ``images`` / ``files`` / ``text`` arrays
    - ``{"outputs": [...]}``, ``{"data": {...}}``
    - ``{"result" | "response" | "description": str}``
    - ``{"imageUrl" | "image": url}``, ``{"videoUrl" | "video": url}``
    - ``{"artifactUrls": [url, ...]}``, ``{"url": url}``
    - ComfyUI node maps ``{"<nodeId>": ["https://...", ...]}``

Usage:
    from infrastructure.notifications.normalizer import PayloadNormalizer

    normalizer = PayloadNormalizer()
    items = normalizer.normalize(record.payload_source)
    texts = PayloadNormalizer.extract_text(items)
    media = PayloadNormalizer.extract_media(items)
"""

import posixpath
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import urlparse

from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import CanonicalOutputItem, OutputType

logger = get_module_logger()

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "avi", "mov", "mkv"})
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "webp", "avif", "bmp", "svg"})
ANIMATION_EXTENSIONS = frozenset({"gif"})
TEXT_EXTENSIONS = frozenset({"txt"})

IMAGE_SUBFOLDERS = frozenset({"image", "images"})
VIDEO_SUBFOLDERS = frozenset({"video"})

TEXT_FIELDS = ("result", "response", "description")
SEGMENT_FIELDS = ("text", "images", "files")

# Legacy type names seen in already-normalized entries.
TYPE_ALIASES = {
    "photo": OutputType.IMAGE,
    "file": OutputType.DOCUMENT,
    "gif": OutputType.ANIMATION,
}


def _extension(path: Optional[str]) -> str:
    if not path:
        return ""
    return posixpath.splitext(path)[1].lstrip(".").lower()


def _url_extension(url: str) -> str:
    try:
        return _extension(urlparse(url).path)
    except ValueError:
        return ""


def _is_http_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


def _resolve_type(value: Any) -> Optional[OutputType]:
    if isinstance(value, OutputType):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    try:
        return OutputType(key)
    except ValueError:
        return None


def classify_file(
    entry: Dict[str, Any], default: OutputType = OutputType.DOCUMENT
) -> Optional[CanonicalOutputItem]:
    """Classify one file-like entry by MIME type, extension and subfolder.

    Rules, first match wins:
        1. MIME ``video/*`` -> video
        2. gif (MIME or extension) -> animation
        3. MIME ``image/*`` -> image
        4. video extension -> video
        5. subfolder ``video`` -> video
        6. ``.txt`` or ``text/plain`` -> text file (fetched and inlined later)
        7. image extension, or subfolder ``image``/``images`` -> image
        8. anything else -> ``default``

    The extension comes from ``filename`` and falls back to the URL path.

    Returns:
        CanonicalOutputItem, or None when the entry has no usable URL
    """
    url = entry.get("url")
    if not isinstance(url, str) or not url.strip():
        return None

    filename = entry.get("filename") or entry.get("name")
    filename = filename if isinstance(filename, str) else None
    raw_format = entry.get("format") or entry.get("mimeType") or entry.get("mime")
    raw_format = raw_format if isinstance(raw_format, str) else None
    mime = (raw_format or "").lower()
    subfolder = str(entry.get("subfolder") or "").lower()
    ext = _extension(filename) or _url_extension(url)

    if mime.startswith("video/"):
        output_type = OutputType.VIDEO
    elif mime == "image/gif" or ext in ANIMATION_EXTENSIONS:
        output_type = OutputType.ANIMATION
    elif mime.startswith("image/"):
        output_type = OutputType.IMAGE
    elif ext in VIDEO_EXTENSIONS or subfolder in VIDEO_SUBFOLDERS:
        output_type = OutputType.VIDEO
    elif ext in TEXT_EXTENSIONS or mime == "text/plain":
        output_type = OutputType.TEXT
    elif ext in IMAGE_EXTENSIONS or subfolder in IMAGE_SUBFOLDERS:
        output_type = OutputType.IMAGE
    else:
        output_type = default

    return CanonicalOutputItem(
        type=output_type, url=url, filename=filename, format=raw_format
    )


class PayloadNormalizer:
    """Tagged-union parser from raw response payloads to canonical items.

    Never raises on malformed input: entries that cannot be parsed are
    skipped and logged at warning level. Item order follows input order.
    """

    def __init__(self, log=None) -> None:
        self._logger = (log or logger).bind(component="payload_normalizer")

    def normalize(self, payload: Any) -> List[CanonicalOutputItem]:
        """Normalize any supported payload shape into canonical items.

        Args:
            payload: Raw ``responsePayload`` (or legacy ``outputs``)

        Returns:
            Ordered list of CanonicalOutputItem, possibly empty
        """
        if payload is None:
            self._logger.warning("response_payload_missing")
            return []

        if isinstance(payload, CanonicalOutputItem):
            return [payload]

        if isinstance(payload, str):
            return self._text_items(payload)

        if isinstance(payload, (list, tuple)):
            items: List[CanonicalOutputItem] = []
            for index, entry in enumerate(payload):
                items.extend(self._parse_entry(entry, index))
            return items

        if isinstance(payload, dict):
            return self._parse_object(payload)

        self._logger.warning(
            "response_payload_unsupported", payload_type=type(payload).__name__
        )
        return []

    def _parse_entry(self, entry: Any, index: int) -> List[CanonicalOutputItem]:
        if isinstance(entry, CanonicalOutputItem):
            return [entry]

        if isinstance(entry, str):
            return self._text_items(entry)

        if not isinstance(entry, dict):
            self._logger.warning(
                "payload_entry_skipped",
                index=index,
                reason="unsupported_type",
                entry_type=type(entry).__name__,
            )
            return []

        if isinstance(entry.get("data"), dict):
            items = self._parse_segment(entry["data"])
        elif self._looks_canonical(entry):
            items = self._canonical_from_dict(entry, index)
        elif isinstance(entry.get("url"), str):
            item = classify_file(entry)
            items = [item] if item else []
        else:
            items = self._parse_segment(entry)

        if not items:
            self._logger.warning(
                "payload_entry_skipped",
                index=index,
                reason="no_deliverable_content",
                keys=sorted(str(k) for k in entry.keys()),
            )
        return items

    def _parse_object(self, payload: Dict[str, Any]) -> List[CanonicalOutputItem]:
        if isinstance(payload.get("outputs"), list):
            return self.normalize(payload["outputs"])

        if isinstance(payload.get("data"), dict):
            return self._parse_segment(payload["data"])

        if self._looks_canonical(payload):
            return self._canonical_from_dict(payload, 0)

        if any(payload.get(field) for field in SEGMENT_FIELDS):
            return self._parse_segment(payload)

        for field in TEXT_FIELDS:
            if payload.get(field):
                return self._text_items(payload[field])

        image_url = payload.get("imageUrl") or payload.get("image")
        if isinstance(image_url, str):
            return self._url_items([image_url], OutputType.IMAGE)

        video_url = payload.get("videoUrl") or payload.get("video")
        if isinstance(video_url, str):
            return [
                CanonicalOutputItem(
                    type=OutputType.VIDEO, url=video_url, format="video/mp4"
                )
            ]

        if isinstance(payload.get("artifactUrls"), list):
            return self._url_items(payload["artifactUrls"], OutputType.IMAGE)

        if isinstance(payload.get("url"), str):
            item = classify_file(payload)
            return [item] if item else []

        if self._is_node_map(payload):
            urls = [url for value in payload.values() for url in value]
            return self._url_items(urls, OutputType.DOCUMENT)

        self._logger.warning(
            "response_payload_unrecognized",
            keys=sorted(str(k) for k in payload.keys()),
        )
        return []

    def _parse_segment(self, data: Dict[str, Any]) -> List[CanonicalOutputItem]:
        """Parse one ``data`` map: text first, then images, then files."""
        items: List[CanonicalOutputItem] = []

        if data.get("text") is not None:
            items.extend(self._text_items(data["text"]))

        images = data.get("images")
        if isinstance(images, list):
            for image in images:
                entry = {"url": image} if isinstance(image, str) else image
                if not isinstance(entry, dict):
                    continue
                item = classify_file(entry, default=OutputType.IMAGE)
                if item is None:
                    continue
                if item.type not in (OutputType.IMAGE, OutputType.ANIMATION):
                    item = item.model_copy(update={"type": OutputType.IMAGE})
                items.append(item)

        files = data.get("files")
        if isinstance(files, list):
            for file_entry in files:
                entry = {"url": file_entry} if isinstance(file_entry, str) else file_entry
                if not isinstance(entry, dict):
                    continue
                item = classify_file(entry)
                if item is not None:
                    items.append(item)

        return items

    def _text_items(self, value: Union[str, Iterable[Any]]) -> List[CanonicalOutputItem]:
        values = [value] if isinstance(value, str) else value
        if not isinstance(values, (list, tuple)):
            return []
        return [
            CanonicalOutputItem(type=OutputType.TEXT, text=text)
            for text in values
            if isinstance(text, str) and text.strip()
        ]

    @staticmethod
    def _url_items(urls: Iterable[Any], default: OutputType) -> List[CanonicalOutputItem]:
        items = []
        for url in urls:
            if isinstance(url, str):
                item = classify_file({"url": url}, default=default)
                if item is not None:
                    items.append(item)
        return items

    @staticmethod
    def _looks_canonical(entry: Dict[str, Any]) -> bool:
        if _resolve_type(entry.get("type")) is None:
            return False
        return isinstance(entry.get("url"), str) or isinstance(entry.get("text"), str)

    def _canonical_from_dict(
        self, entry: Dict[str, Any], index: int
    ) -> List[CanonicalOutputItem]:
        fields = {
            key: entry[key]
            for key in ("url", "text", "filename", "format")
            if entry.get(key) is not None
        }
        try:
            item = CanonicalOutputItem(type=_resolve_type(entry["type"]), **fields)
        except ValidationError as exc:
            self._logger.warning(
                "payload_entry_skipped",
                index=index,
                reason="invalid_canonical_item",
                error=str(exc),
            )
            return []
        if item.type == OutputType.TEXT and item.text is not None and not item.text.strip():
            return []
        return [item]

    @staticmethod
    def _is_node_map(payload: Dict[str, Any]) -> bool:
        if not payload:
            return False
        return all(
            isinstance(value, list) and value and all(_is_http_url(v) for v in value)
            for value in payload.values()
        )

    @staticmethod
    def extract_text(items: Iterable[CanonicalOutputItem]) -> List[str]:
        """Inline text of all text items, in order. Callers dedupe."""
        return [
            item.text
            for item in items
            if item.type == OutputType.TEXT and item.text is not None
        ]

    @staticmethod
    def extract_media(items: Iterable[CanonicalOutputItem]) -> List[CanonicalOutputItem]:
        """Image, video, animation and document items, in order."""
        return [item for item in items if item.type.is_media]

    @staticmethod
    def extract_text_files(
        items: Iterable[CanonicalOutputItem],
    ) -> List[CanonicalOutputItem]:
        """Remote text files whose contents must be fetched and inlined."""
        return [item for item in items if item.is_text_file]

    @staticmethod
    def to_web_format(
        items: List[CanonicalOutputItem],
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Project canonical items into the JSON shape webhook consumers expect.

        - no items -> ``{}``
        - a single text item -> ``{"text": "..."}``
        - only images -> ``{"images": [{"url": ...}, ...]}``
        - only videos -> ``{"files": [{"url": ..., "format": ...}, ...]}``
        - anything else -> list of item dicts, in order
        """
        if not items:
            return {}

        if len(items) == 1 and items[0].type == OutputType.TEXT and items[0].text:
            return {"text": items[0].text}

        types = {item.type for item in items}
        if types == {OutputType.IMAGE}:
            return {"images": [_without_type(item) for item in items]}
        if types == {OutputType.VIDEO}:
            return {"files": [_without_type(item) for item in items]}

        return [item.to_web_dict() for item in items]


def _without_type(item: CanonicalOutputItem) -> Dict[str, Any]:
    data = item.to_web_dict()
    data.pop("type", None)
    return data
