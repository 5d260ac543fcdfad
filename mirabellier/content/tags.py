"""Post tag sanitization and usage counts."""

import re
from collections.abc import Iterable
from typing import Any


TAG_MAX_LENGTH = 10
MAX_TAGS = 5
_DISALLOWED = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_tag(tag: Any) -> str:
    """Strip disallowed characters and truncate. Non-strings become ``""``."""
    if not isinstance(tag, str):
        return ""
    return _DISALLOWED.sub("", tag)[:TAG_MAX_LENGTH]


def sanitize_tags(tags: Any) -> list[str]:
    """Clean a client-supplied tag list.

    Invalid, duplicate (case-insensitive, first spelling wins) and surplus
    tags are dropped without error.

    Example:
        >>> sanitize_tags(["Rust!", "go", "RUST!", "toolongtagname12345"])
        ['Rust', 'go', 'toolongtag']
    """
    if not isinstance(tags, list | tuple):
        return []

    result: list[str] = []
    seen: set[str] = set()
    for raw in tags:
        tag = sanitize_tag(raw)
        key = tag.lower()
        if not tag or key in seen:
            continue
        seen.add(key)
        result.append(tag)
        if len(result) == MAX_TAGS:
            break
    return result


def count_tags(tag_lists: Iterable[list[str]]) -> list[tuple[str, int]]:
    """Posts per tag, most used first.

    Tags are grouped case-insensitively under the first spelling seen.
    """
    counts: dict[str, int] = {}
    spelling: dict[str, str] = {}
    for tags in tag_lists:
        for tag in {t.lower(): t for t in tags}.values():
            key = tag.lower()
            spelling.setdefault(key, tag)
            counts[key] = counts.get(key, 0) + 1

    return sorted(
        ((spelling[key], count) for key, count in counts.items()),
        key=lambda item: (-item[1], item[0].lower()),
    )
