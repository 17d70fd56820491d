"""Slug generation for forum topics."""

from __future__ import annotations

import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def generate_slug(title: str) -> str:
    """Return a lowercase, hyphen-separated ASCII slug for ``title``."""

    normalized = unicodedata.normalize("NFKD", title)
    ascii_title = normalized.encode("ascii", "ignore").decode("ascii")
    slug = _NON_WORD.sub("", ascii_title.lower()).strip()
    slug = _SEPARATORS.sub("-", slug).strip("-")
    return slug or "topic"
