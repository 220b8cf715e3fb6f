from __future__ import annotations

import re

from .errors import ValidationError

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

_TRAILING_EXTENSION = re.compile(r"\.[^.]+$", re.IGNORECASE)

_CONTENT_TYPES = (
    (".webp", "image/webp"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
)


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_safe_key(key: str) -> bool:
    """Return True when ``key`` names a single object without traversal."""
    return "/" not in key and "\\" not in key and ".." not in key


def require_key(value: object, *, what: str = "key") -> str:
    """Validate a caller-supplied key for a direct fetch.

    Raises:
        ValidationError: If the key is blank or not path-safe.
    """
    key = _clean(value)
    if not key:
        msg = f"Missing {what} query parameter"
        raise ValidationError(msg)
    if not is_safe_key(key):
        msg = f"Invalid {what}"
        raise ValidationError(msg)
    return key


def thumbnail_candidates(key: object = None, file: object = None) -> list[str]:
    """Build the ordered object keys to try for a thumbnail lookup.

    The explicit ``key`` comes first, followed by image variants of the base
    name of ``file`` (or ``key`` when no file is given). Unsafe variants are
    skipped and duplicates keep their first position. An empty list means
    nothing can match.

    Raises:
        ValidationError: If neither ``key`` nor ``file`` is supplied.
    """
    key = _clean(key)
    file = _clean(file)
    if not key and not file:
        msg = "Thumbnail key/file is required"
        raise ValidationError(msg)

    candidates: dict[str, None] = {}

    def add(value: str) -> None:
        if value and is_safe_key(value):
            candidates.setdefault(value, None)

    add(key)
    base = _TRAILING_EXTENSION.sub("", file or key)
    for extension in IMAGE_EXTENSIONS:
        add(f"{base}{extension}")
    return list(candidates)


def content_type_for_key(key: str) -> str:
    lowered = (key or "").lower()
    for suffix, content_type in _CONTENT_TYPES:
        if lowered.endswith(suffix):
            return content_type
    return "application/octet-stream"
