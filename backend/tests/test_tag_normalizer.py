"""Tests for tag normalization."""
import pytest

from storytags.services.tag_normalizer import generate_tag_slug, normalize_tag, normalize_tags


def test_normalize_tag_lowercases():
    """Tags are converted to lowercase."""
    assert normalize_tag("ROMANCE") == "romance"
    assert normalize_tag("Fantasy") == "fantasy"


def test_normalize_tag_trims_and_hyphenates():
    """Surrounding whitespace is dropped, inner whitespace runs become one hyphen."""
    assert normalize_tag("  high school  ") == "high-school"
    assert normalize_tag("high   school") == "high-school"
    assert normalize_tag("young\tadult") == "young-adult"


def test_normalize_tag_strips_symbols():
    """Characters outside [a-z0-9-] are removed."""
    assert normalize_tag("sci-fi!") == "sci-fi"
    assert normalize_tag("sci-fi@#$") == "sci-fi"
    assert normalize_tag("romance!") == "romance"


def test_normalize_tag_keeps_leading_hash():
    """A leading '#' survives, one only."""
    assert normalize_tag("#romance") == "#romance"
    assert normalize_tag("#high school") == "#high-school"
    assert normalize_tag("##romance") == "#romance"


@pytest.mark.parametrize("raw", ["", "   ", "#", "---", "# - -", "!!!", None])
def test_normalize_tag_empty_results(raw):
    """Inputs with nothing usable normalize to ''."""
    assert normalize_tag(raw) == ""


@pytest.mark.parametrize("raw", [
    "ROMANCE", "  high school ", "#High School", "sci-fi@#$", "a - b", "# x", "Café au lait", "---",
])
def test_normalize_tag_idempotent(raw):
    """Normalizing twice changes nothing."""
    once = normalize_tag(raw)
    assert normalize_tag(once) == once


def test_generate_tag_slug_matches_normalize():
    """Slugs are the normalized name."""
    for tag in ["Romance", "High School", "#fantasy", "sci-fi!"]:
        assert generate_tag_slug(tag) == normalize_tag(tag)


def test_normalize_tags_normalizes_each():
    """Every entry is normalized."""
    assert normalize_tags(["ROMANCE", "  Fantasy  ", "Sci-Fi!"]) == ["romance", "fantasy", "sci-fi"]


def test_normalize_tags_removes_duplicates_in_order():
    """Case variants collapse to the first occurrence."""
    assert normalize_tags(["romance", "ceo", "ROMANCE", "Romance"]) == ["romance", "ceo"]


def test_normalize_tags_filters_empty_and_too_long():
    """Empty and over-length tags are dropped."""
    tags = ["romance", "", "   ", "a" * 31, "---", "fantasy"]
    assert normalize_tags(tags) == ["romance", "fantasy"]


def test_normalize_tags_empty_input():
    """Nothing in, nothing out."""
    assert normalize_tags([]) == []
