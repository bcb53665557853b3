"""
Media reference extraction.

Remote payloads carry images under many field names and at arbitrary
nesting depth (upload results, CDN descriptors, arrays of renditions...).
`resolve_media` walks such a value depth-first and returns the first usable
reference: a `LocalFile` handle or a trimmed, non-empty URL string. `None`
means nothing was found.
"""
import re
from typing import Any, Iterable, Optional, Set

from src.domain.models.trivia_models import LocalFile, MediaRef

DEFAULT_MAX_DEPTH = 6

# Probed first, in this order; the first key that resolves wins.
PRIORITY_KEYS = (
    "url",
    "secure_url",
    "secureUrl",
    "location",
    "Location",
    "path",
    "src",
    "href",
    "value",
    "data",
    "image",
    "imageUrl",
    "image_url",
    "media",
    "mediaUrl",
    "media_url",
    "original",
    "preview",
    "file",
    "asset",
)

# Entity-level fields that may hold the entity's own image.
MEDIA_FIELD_ALIASES = (
    "imagen",
    "image",
    "imagenUrl",
    "imagen_url",
    "imageUrl",
    "image_url",
    "mediaUrl",
    "media_url",
)

_ABSOLUTE_URL_RE = re.compile(r"^(?:https?:|data:|blob:)", re.IGNORECASE)


def resolve_media(
    value: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    depth: int = 0,
    visited: Optional[Set[int]] = None,
) -> Optional[MediaRef]:
    if not value or depth > max_depth:
        return None
    if isinstance(value, LocalFile):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if not isinstance(value, (dict, list, tuple)):
        return None

    if visited is None:
        visited = set()
    # Composite values are tracked by identity so cycles terminate.
    if id(value) in visited:
        return None
    visited.add(id(value))

    if isinstance(value, (list, tuple)):
        for item in value:
            resolved = resolve_media(item, max_depth, depth + 1, visited)
            if resolved is not None:
                return resolved
        return None

    for key in PRIORITY_KEYS:
        if value.get(key) is not None:
            resolved = resolve_media(value[key], max_depth, depth + 1, visited)
            if resolved is not None:
                return resolved

    for key, item in value.items():
        if key in PRIORITY_KEYS:
            continue
        resolved = resolve_media(item, max_depth, depth + 1, visited)
        if resolved is not None:
            return resolved

    return None


def resolve_entity_media(
    entity: Any,
    keys: Iterable[str] = MEDIA_FIELD_ALIASES,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[MediaRef]:
    """Resolve an entity's image from its own alias fields, in alias order."""
    if not isinstance(entity, dict):
        return None
    for key in keys:
        resolved = resolve_media(entity.get(key), max_depth)
        if resolved is not None:
            return resolved
    return None


def ensure_absolute_url(value: Optional[MediaRef], base_url: Optional[str]) -> Optional[MediaRef]:
    """
    Turn backend-relative paths ("uploads/a.png") into absolute URLs.

    Absolute http(s), data: and blob: URLs and local files are returned as is.
    """
    if not value or isinstance(value, LocalFile):
        return value
    if _ABSOLUTE_URL_RE.match(value):
        return value
    base = (base_url or "").rstrip("/")
    if not base:
        return value
    return f"{base}/{value.lstrip('/')}"
