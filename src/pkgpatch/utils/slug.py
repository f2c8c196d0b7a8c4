"""Utilities for turning package names into filesystem-friendly segments."""

from __future__ import annotations

import hashlib
import re
from typing import List, Pattern

_UNSAFE_PATTERN: Pattern[str] = re.compile(r"[^a-z0-9_.-]+")
_HYPHEN_COLLAPSE = re.compile(r"-{2,}")


def slugify(
    value: str | None,
    *,
    fallback: str = "package",
    max_length: int = 80,
) -> str:
    """Normalize ``value`` into a single path segment.

    The result never contains a path separator and is never ``.`` or ``..``.
    """
    source = (value or "").strip()
    if not source:
        source = fallback

    source = source.lower()
    processed_fallback = ((fallback or "").strip() or "package").lower()

    slug = _normalize(source)
    fallback_slug = _normalize(processed_fallback) or "package"

    if not slug:
        slug = fallback_slug

    if len(slug) > max_length:
        slug = _abbreviate(slug, max_length=max_length)

    return slug


def package_path_segments(package_name: str) -> List[str]:
    """Split ``vendor/name`` into slugified directory segments."""
    parts = [part for part in (package_name or "").replace("\\", "/").split("/") if part.strip()]
    if not parts:
        return [slugify(None)]
    return [slugify(part) for part in parts]


def _abbreviate(slug: str, *, max_length: int) -> str:
    digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()[:8]
    prefix_length = max(max_length - len(digest) - 1, 1)
    prefix = slug[:prefix_length].rstrip("-.")
    if not prefix:
        prefix = slug[:prefix_length]
    return f"{prefix}-{digest}"


def _normalize(value: str) -> str:
    slug = _UNSAFE_PATTERN.sub("-", value)
    slug = _HYPHEN_COLLAPSE.sub("-", slug)
    slug = slug.strip("-")
    # Dots alone would resolve to the current or parent directory.
    if not slug.strip("."):
        return ""
    return slug
