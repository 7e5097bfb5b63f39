"""Helpers for naming stored media and classifying its content type."""

import mimetypes
import re
import secrets
import time
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional

from media_api.errors import UnsupportedMediaType
from media_api.schemas import ResourceKind

MAX_STEM_LENGTH = 100
FALLBACK_STEM = "file"

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+")
_STORAGE_NAME = re.compile(r"^\d+-[0-9a-f]{6}-(?P<original>.+)$")


def decode_original_name(name: str) -> str:
    """
    Repair a file name whose UTF-8 bytes were decoded as Latin-1.

    Multipart parsers commonly hand back `cafÃ©.jpg` for `café.jpg`. If the text
    re-encodes to Latin-1 bytes that form valid UTF-8, the UTF-8 reading wins;
    otherwise the name is already correct and is returned as is. Directory
    components are always dropped.
    """
    try:
        name = name.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        pass
    return PureWindowsPath(PurePosixPath(name).name).name


def sanitize_name(name: str) -> str:
    """Reduce a display name to characters that are safe in a file name."""
    path = PurePosixPath(name)
    stem = _UNSAFE_CHARS.sub("_", path.stem).strip("._")[:MAX_STEM_LENGTH] or FALLBACK_STEM
    suffix = _UNSAFE_CHARS.sub("", path.suffix).lower()
    return f"{stem}{suffix}"


def unique_token() -> str:
    """A fresh `<timestamp>-<random>` token; two calls never return the same value."""
    return f"{time.time_ns()}-{secrets.token_hex(3)}"


def build_storage_name(original_name: str, mime_type: Optional[str] = None) -> str:
    """
    `<time_ns>-<6 hex>-<sanitized name>`, unique across concurrent uploads.

    When the name's extension does not map to the same kind of media as
    `mime_type` (or there is no extension at all), the extension registered for
    `mime_type` is appended so the stored file is still recognisable as media.
    """
    name = sanitize_name(original_name)
    if mime_type:
        mime_type = mime_type.split(";")[0].strip().lower()
        guessed, _ = mimetypes.guess_type(name)
        if guessed is None or guessed.split("/")[0] != mime_type.split("/")[0]:
            name += mimetypes.guess_extension(mime_type) or ""
    return f"{unique_token()}-{name}"


def original_name_from_storage_name(storage_name: str) -> str:
    match = _STORAGE_NAME.match(storage_name)
    return match.group("original") if match else storage_name


def resource_kind_for(mime_type: str) -> ResourceKind:
    """Classify a content type, rejecting anything that is not an image or a video."""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return ResourceKind.IMAGE
    if mime_type.startswith("video/"):
        return ResourceKind.VIDEO
    raise UnsupportedMediaType(
        "Only image and video files are allowed!",
        details=f"received content type: {mime_type or 'unknown'}",
    )
