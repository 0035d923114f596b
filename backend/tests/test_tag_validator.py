"""Tests for tag validation."""
from storytags.services.tag_validator import (
    MAX_TAGS_PER_NOVEL,
    TAG_LIMITS,
    is_valid_tag,
    validate_tags,
)


def test_limits():
    """Vocabulary limits."""
    assert TAG_LIMITS["MAX_TAGS"] == 20
    assert TAG_LIMITS["MAX_TAG_LENGTH"] == 30
    assert TAG_LIMITS["MIN_TAG_LENGTH"] == 1


def test_is_valid_tag_accepts_slugs():
    """Hyphen-delimited lowercase tokens pass, with or without '#'."""
    assert is_valid_tag("romance") is True
    assert is_valid_tag("high-school") is True
    assert is_valid_tag("#romance") is True
    assert is_valid_tag("sci-fi") is True
    assert is_valid_tag("top-10-picks") is True


def test_is_valid_tag_rejects_bad_input():
    """Spaces, symbols, uppercase and stray hyphens fail."""
    assert is_valid_tag("") is False
    assert is_valid_tag("high school") is False
    assert is_valid_tag("romance!") is False
    assert is_valid_tag("Romance") is False
    assert is_valid_tag("-romance") is False
    assert is_valid_tag("romance-") is False
    assert is_valid_tag("a--b") is False
    assert is_valid_tag("#") is False


def test_is_valid_tag_length_limits():
    """1 to 30 characters."""
    assert is_valid_tag("a") is True
    assert is_valid_tag("a" * 30) is True
    assert is_valid_tag("a" * 31) is False


def test_validate_tags_ok():
    """A clean list has no errors."""
    result = validate_tags(["romance", "fantasy", "sci-fi"])
    assert result.valid is True
    assert result.errors == []


def test_validate_tags_too_many():
    """More than 20 tags is rejected."""
    tags = [f"tag{i}" for i in range(MAX_TAGS_PER_NOVEL + 1)]
    result = validate_tags(tags)
    assert result.valid is False
    assert any("Too many tags" in e for e in result.errors)


def test_validate_tags_invalid_tag():
    """Each invalid tag is named."""
    result = validate_tags(["romance", "high school", "fantasy"])
    assert result.valid is False
    assert "Invalid tag: 'high school'" in result.errors


def test_validate_tags_duplicates():
    """Exact duplicates are rejected."""
    result = validate_tags(["a", "a"])
    assert result.valid is False
    assert any("Duplicate" in e for e in result.errors)


def test_validate_tags_reports_every_rule():
    """All checks run; nothing short-circuits."""
    tags = [f"tag{i}" for i in range(20)] + ["bad tag", "tag0"]
    result = validate_tags(tags)

    assert result.valid is False
    assert len(result.errors) == 3
    assert any("Too many tags" in e for e in result.errors)
    assert "Invalid tag: 'bad tag'" in result.errors
    assert "Duplicate tags: tag0" in result.errors
