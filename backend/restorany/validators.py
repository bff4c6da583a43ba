"""Shared input sanitizers for API models and the review ledger."""

from __future__ import annotations

import re
from collections.abc import Iterable

NAME_MAX_LENGTH = 120
COMMENT_MAX_LENGTH = 2000
TOKEN_MAX = 24
TOKEN_MAX_LENGTH = 60
PHONE_PATTERN = re.compile(r"^[0-9+()\-\.\s/]{6,32}$")


def _squash_whitespace(text: str) -> str:
    return " ".join(text.split())


def normalize_display_name(value: str, *, field: str = "name") -> str:
    if not isinstance(value, str):  # pragma: no cover - Pydantic guards by default
        raise ValueError(f"{field} must be a string")
    cleaned = _squash_whitespace(value.strip())
    if not cleaned:
        raise ValueError(f"{field} cannot be blank")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} must be <= {NAME_MAX_LENGTH} characters")
    return cleaned


def normalize_phone(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if not PHONE_PATTERN.fullmatch(cleaned):
        raise ValueError(
            "phone must contain digits, spaces, '.', '-', '/', '()' or '+' and be 6-32 characters"
        )
    return cleaned


def normalize_comment(
    value: str | None, *, field: str = "comment", max_length: int = COMMENT_MAX_LENGTH
) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > max_length:
        raise ValueError(f"{field} must be <= {max_length} characters")
    return cleaned


def normalize_tokens(
    items: Iterable[str] | str | None,
    *,
    max_items: int = TOKEN_MAX,
    max_length: int = TOKEN_MAX_LENGTH,
) -> list[str]:
    """Clean a list of short labels (categories, amenities); a comma-separated string is accepted."""
    if not items:
        return []
    if isinstance(items, str):
        items = items.split(",")
    cleaned: list[str] = []
    seen: set[str] = set()
    for raw in items:
        if not isinstance(raw, str):
            continue
        entry = _squash_whitespace(raw.strip())
        if not entry:
            continue
        if len(entry) > max_length:
            raise ValueError(f"label '{entry[:20]}...' must be <= {max_length} characters")
        key = entry.lower()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(entry)
        if len(cleaned) > max_items:
            raise ValueError(f"at most {max_items} labels are accepted")
    return cleaned


__all__ = [
    "COMMENT_MAX_LENGTH",
    "NAME_MAX_LENGTH",
    "normalize_comment",
    "normalize_display_name",
    "normalize_phone",
    "normalize_tokens",
]
