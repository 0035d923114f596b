"""
Tag normalization.
Turns free-form tag input into the canonical slug form used for storage and URLs.
"""
import re
from typing import List

from storytags.services.tag_validator import MAX_TAG_LENGTH

WHITESPACE_RUN = re.compile(r'\s+')
DISALLOWED_CHARS = re.compile(r'[^a-z0-9-]')


def normalize_tag(raw: str) -> str:
    """
    Normalize a raw tag string.

    - Trim and lowercase
    - Keep a single leading '#'
    - Whitespace runs become one hyphen
    - Drop everything outside [a-z0-9-]
    - Empty or hyphen-only results become ""

    Never raises; "" means the input should be discarded.
    """
    if not raw:
        return ""

    text = raw.strip().lower()

    prefix = ""
    if text.startswith("#"):
        prefix = "#"
        text = text[1:]

    text = WHITESPACE_RUN.sub("-", text)
    text = DISALLOWED_CHARS.sub("", text)

    if not text.strip("-"):
        return ""

    return prefix + text


def generate_tag_slug(raw: str) -> str:
    """Slug for a tag; identical to its normalized name."""
    return normalize_tag(raw)


def normalize_tags(tags: List[str]) -> List[str]:
    """
    Normalize a list of raw tags.

    - Normalizes each entry
    - Filters out empty results
    - Filters out entries longer than MAX_TAG_LENGTH
    - Removes duplicates while preserving order

    Args:
        tags: List of raw tag strings

    Returns:
        Normalized list of tags
    """
    if not tags:
        return []

    seen = set()
    unique = []
    for raw in tags:
        tag = normalize_tag(raw)
        if not tag or len(tag) > MAX_TAG_LENGTH:
            continue
        if tag not in seen:
            seen.add(tag)
            unique.append(tag)

    return unique
