"""
File Validation Utilities for Tubely

This module implements the checks applied to an uploaded file part before any
of its bytes are staged, and the object key builder used once a file is ready
for storage:

- Declared Content-Type parsing (``type/subtype; params``)
- Allow-list enforcement per upload kind (MP4 videos, JPEG/PNG thumbnails)
- File extension derivation from the registered subtype
- Unique object keys: ``[classification/]<random-token>.<ext>``
"""

import base64
import re
import secrets

from tubely.models.video import GeometryClassification


# =============================================================================
# CONSTANTS - Allowed media types
# =============================================================================

ALLOWED_VIDEO_MEDIA_TYPES: frozenset[str] = frozenset({"video/mp4"})

ALLOWED_THUMBNAIL_MEDIA_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png"})

# Random bytes in an object key token (encoded to 43 URL-safe characters)
OBJECT_KEY_TOKEN_BYTES: int = 32

BYTES_PER_KB: int = 1024

# RFC 6838 restricted-name characters for type and subtype
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]{0,126}$")


class InvalidContentTypeError(ValueError):
    """Raised when a declared Content-Type header cannot be parsed."""


def parse_media_type(content_type: str | None) -> str:
    """
    Extract the lower-cased ``type/subtype`` from a Content-Type header value.

    Parameters such as ``charset`` are discarded.

    Args:
        content_type: Raw header value, e.g. ``"video/mp4; codecs=avc1"``.

    Returns:
        str: Normalized media type, e.g. ``"video/mp4"``.

    Raises:
        InvalidContentTypeError: If the value is missing or not ``type/subtype``.

    Example:
        ```python
        parse_media_type("Image/PNG; q=0.9")  # "image/png"
        ```
    """
    if not content_type or not content_type.strip():
        raise InvalidContentTypeError("Missing Content-Type")

    media_type = content_type.split(";", 1)[0].strip().lower()
    main_type, sep, subtype = media_type.partition("/")
    if not sep or not _TOKEN_PATTERN.match(main_type) or not _TOKEN_PATTERN.match(subtype):
        raise InvalidContentTypeError(f"Invalid Content-Type: {content_type!r}")

    return media_type


def is_allowed_media_type(media_type: str, allowed: frozenset[str]) -> bool:
    """Check a parsed media type against an allow-list."""
    return media_type in allowed


def extension_for_media_type(media_type: str) -> str:
    """
    Derive a file extension from the media type's subtype.

    Structured-syntax suffixes are dropped (``image/svg+xml`` -> ``svg``).

    Example:
        ```python
        extension_for_media_type("video/mp4")   # "mp4"
        extension_for_media_type("image/jpeg")  # "jpeg"
        ```
    """
    _, _, subtype = media_type.partition("/")
    subtype = subtype.split("+", 1)[0]
    return subtype or "bin"


def generate_object_token() -> str:
    """Return a fresh URL-safe random token with no padding."""
    return base64.urlsafe_b64encode(secrets.token_bytes(OBJECT_KEY_TOKEN_BYTES)).decode().rstrip("=")


def build_object_key(
    media_type: str,
    classification: GeometryClassification | None = None,
) -> str:
    """
    Build a unique object key for an upload.

    Uniqueness rests on the random token, not on the content; every call
    returns a new key.

    Args:
        media_type: Parsed media type of the stored file.
        classification: Geometry category for videos; None for thumbnails.

    Returns:
        str: ``"<classification>/<token>.<ext>"`` or ``"<token>.<ext>"``.
    """
    filename = f"{generate_object_token()}.{extension_for_media_type(media_type)}"
    if classification is None:
        return filename
    return f"{GeometryClassification(classification).value}/{filename}"


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count for error messages.

    Example:
        ```python
        format_file_size(10 << 20)  # "10.0 MB"
        format_file_size(1 << 30)   # "1.0 GB"
        ```
    """
    size = float(size_bytes)
    for unit in ("bytes", "KB", "MB", "GB"):
        if size < BYTES_PER_KB or unit == "GB":
            if unit == "bytes":
                return f"{int(size)} bytes"
            return f"{size:.1f} {unit}"
        size /= BYTES_PER_KB
    return f"{size:.1f} GB"
