"""Mention extraction from forum post bodies.

The rich-text editor stores mentions as ``<span data-type="mention" data-id="...">``
nodes; posts written in plain text use ``@username``. Both forms are recognised.
"""

from __future__ import annotations

import re

_MENTION_NODE = re.compile(
    r"<span\b[^>]*\bdata-type=[\"']mention[\"'][^>]*>",
    re.IGNORECASE,
)
_DATA_ID = re.compile(r"\bdata-id=[\"']([^\"']+)[\"']", re.IGNORECASE)
_AT_USERNAME = re.compile(r"(?<![\w@])@([A-Za-z0-9_][A-Za-z0-9_.-]{0,99})")
_TAG = re.compile(r"<[^>]+>")


def extract_mentioned_user_ids(content: str) -> list[str]:
    """Return the ``data-id`` of every mention node, in order, without duplicates."""

    seen: dict[str, None] = {}
    for node in _MENTION_NODE.finditer(content):
        match = _DATA_ID.search(node.group(0))
        if match:
            seen.setdefault(match.group(1), None)
    return list(seen)


def extract_mentioned_usernames(content: str) -> list[str]:
    """Return ``@username`` handles found in the text content, lowercased and unique."""

    text = _TAG.sub(" ", content)
    seen: dict[str, None] = {}
    for match in _AT_USERNAME.finditer(text):
        seen.setdefault(match.group(1).rstrip(".-").lower(), None)
    return list(seen)


def strip_markup(content: str) -> str:
    """Collapse a post body to plain text for previews."""

    return " ".join(_TAG.sub(" ", content).split())


def make_preview(content: str, length: int) -> str:
    """Return at most ``length`` characters of plain text, ellipsised when cut."""

    text = strip_markup(content)
    if len(text) <= length:
        return text
    return text[: max(length - 1, 0)].rstrip() + "…"


_QUOTE_NODE = re.compile(r"<blockquote\b[^>]*>", re.IGNORECASE)
_QUOTED_POST = re.compile(r"\bdata-post-id=[\"']([^\"']+)[\"']", re.IGNORECASE)


def extract_quoted_post_ids(content: str) -> list[str]:
    """Return post ids referenced by ``<blockquote data-post-id="...">`` quotes."""

    seen: dict[str, None] = {}
    for node in _QUOTE_NODE.finditer(content):
        match = _QUOTED_POST.search(node.group(0))
        if match:
            seen.setdefault(match.group(1), None)
    return list(seen)
