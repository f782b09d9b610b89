"""Slug and excerpt helpers."""

from __future__ import annotations

import re
import unicodedata

EXCERPT_CHARS = 200

_TAG_RE = re.compile(r"<[^>]*>")
_NON_SLUG_TITLE_RE = re.compile(r"[^a-z0-9]+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9-]+")
_HYPHENS_RE = re.compile(r"-{2,}")


def _ascii_lower(value: str) -> str:
    folded = unicodedata.normalize("NFKD", value)
    return folded.encode("ascii", "ignore").decode("ascii").lower()


def slugify(title: str) -> str:
    """Derive a URL slug from an article title."""
    return _NON_SLUG_TITLE_RE.sub("-", _ascii_lower(title)).strip("-")


def sanitize_slug(value: str) -> str:
    """Normalize a caller-supplied slug to ``[a-z0-9-]+``."""
    slug = _NON_SLUG_RE.sub("-", _ascii_lower(value.strip()))
    return _HYPHENS_RE.sub("-", slug).strip("-")


def strip_html(value: str) -> str:
    return _TAG_RE.sub("", value)


def derive_excerpt(body: str, limit: int = EXCERPT_CHARS) -> str:
    plain = strip_html(body)
    if len(plain) > limit:
        return plain[:limit] + "..."
    return plain


def normalize_tags(tags: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        value = tag.strip()
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
