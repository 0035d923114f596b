"""Tag vocabulary limits and validation."""
import re
from dataclasses import dataclass, field
from typing import List

# Constants
MAX_TAGS_PER_NOVEL = 20
MAX_TAG_LENGTH = 30
MIN_TAG_LENGTH = 1

TAG_LIMITS = {
    "MAX_TAGS": MAX_TAGS_PER_NOVEL,
    "MAX_TAG_LENGTH": MAX_TAG_LENGTH,
    "MIN_TAG_LENGTH": MIN_TAG_LENGTH,
}

# Hyphen-delimited lowercase alphanumeric tokens, optional leading '#'
TAG_PATTERN = re.compile(r'^#?[a-z0-9]+(-[a-z0-9]+)*$')


@dataclass
class TagValidationResult:
    """Outcome of validate_tags(): every violated rule, not just the first."""
    valid: bool
    errors: List[str] = field(default_factory=list)


def is_valid_tag(tag: str) -> bool:
    """
    Validate a single, already normalized tag.

    Args:
        tag: Tag string to validate

    Returns:
        True if tag is valid, False otherwise
    """
    if not tag:
        return False

    if len(tag) < MIN_TAG_LENGTH or len(tag) > MAX_TAG_LENGTH:
        return False

    return bool(TAG_PATTERN.match(tag))


def validate_tags(tags: List[str]) -> TagValidationResult:
    """
    Validate a tag list before it is persisted.

    All checks always run:
    - Count limit (MAX_TAGS_PER_NOVEL)
    - Each tag against is_valid_tag()
    - Exact duplicates within the list

    Args:
        tags: List of normalized tag strings

    Returns:
        TagValidationResult with all errors found
    """
    errors = []

    if len(tags) > MAX_TAGS_PER_NOVEL:
        errors.append(f"Too many tags: at most {MAX_TAGS_PER_NOVEL} tags are allowed")

    for tag in tags:
        if not is_valid_tag(tag):
            errors.append(f"Invalid tag: '{tag}'")

    seen = set()
    duplicates = []
    for tag in tags:
        if tag in seen and tag not in duplicates:
            duplicates.append(tag)
        seen.add(tag)
    if duplicates:
        errors.append(f"Duplicate tags: {', '.join(duplicates)}")

    return TagValidationResult(valid=not errors, errors=errors)
