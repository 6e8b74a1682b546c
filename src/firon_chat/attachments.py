"""Image upload validation and data URI helpers."""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import os
from pathlib import Path
import re

from .exceptions import AttachmentError

LOGGER = logging.getLogger(__name__)

# Image file extensions accepted for analysis uploads.
IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"}
)

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
DEFAULT_MIME_TYPE = "image/png"

_DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[\w.-]+)*;base64,(?P<data>.*)$",
    re.DOTALL,
)


def _is_regular_file(path: Path) -> bool:
    try:
        return path.is_file() and not path.is_symlink()
    except OSError:
        return False


def is_image_path(path: str) -> bool:
    """Check if path has an accepted image file extension."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def validate_image_path(raw_path: str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> Path:
    """Return the resolved image path or raise :class:`AttachmentError`."""
    cleaned = raw_path.strip().strip("'\"")
    if not cleaned:
        raise AttachmentError("No image path given.")
    expanded = Path(os.path.expanduser(cleaned))
    if not _is_regular_file(expanded):
        raise AttachmentError(f"Image not found: {expanded}")
    ext = expanded.suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        raise AttachmentError(f"Unsupported image type: {ext or '(none)'}")
    try:
        size = expanded.stat().st_size
    except OSError as exc:
        raise AttachmentError(f"Unable to read image: {exc}") from exc
    if size > max_bytes:
        raise AttachmentError(
            f"Image too large: {size} bytes (limit {max_bytes} bytes)."
        )
    return expanded.resolve(strict=False)


def encode_image_file(raw_path: str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> str:
    """Read an image from disk and return it as a base64 ``data:`` URI."""
    path = validate_image_path(raw_path, max_bytes=max_bytes)
    mime, _ = mimetypes.guess_type(path.name)
    try:
        payload = path.read_bytes()
    except OSError as exc:
        raise AttachmentError(f"Unable to read image: {exc}") from exc
    LOGGER.info(
        "attachments.image.encoded",
        extra={
            "event": "attachments.image.encoded",
            "path": str(path),
            "bytes": len(payload),
        },
    )
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime or DEFAULT_MIME_TYPE};base64,{encoded}"


def parse_data_uri(uri: str) -> tuple[str, str]:
    """Split a base64 data URI into ``(mime_type, base64_payload)``.

    A bare base64 string is accepted as ``image/png`` payload.
    """
    match = _DATA_URI_PATTERN.match(uri.strip())
    if match is None:
        if uri.startswith("data:"):
            raise AttachmentError("Image data URI is not base64 encoded.")
        return DEFAULT_MIME_TYPE, uri.strip()
    return match.group("mime") or DEFAULT_MIME_TYPE, match.group("data")


def describe_image(uri: str | None) -> str:
    """Return a short label for an image reference, for terminal rendering."""
    if not uri:
        return ""
    if not uri.startswith("data:"):
        return f"[image: {uri}]"
    try:
        mime, data = parse_data_uri(uri)
        size = len(base64.b64decode(data, validate=False))
    except (AttachmentError, binascii.Error, ValueError):
        return "[image]"
    kind = mime.split("/", 1)[-1]
    if size >= 1024:
        return f"[image: {kind}, {size / 1024:.1f} KB]"
    return f"[image: {kind}, {size} B]"
