"""Tests for related tag recommendations."""
import pytest

from storytags.config import settings
from storytags.exceptions import InvalidArgument, NotFound, TagsNotFound
from storytags.models import Tag
from storytags.services.related_tags import (
    parse_limit,
    parse_tag_list,
    related_tags,
    related_tags_for_selection,
)
from storytags.services.tag_storage import matching_novel_ids


def tag_id(db_session, name):
    return db_session.query(Tag).filter(Tag.name == name).one().id


def summary(result):
    return [(t.slug, t.co_occurrence) for t in result]


@pytest.fixture
def tie_catalog(make_novel):
    """
    Candidates (tag 'x'): A {x, p, q, r, s}, B {x, p, q}
    'p' is also used by an unpublished novel, so its global count is higher than 'q'.
    """
    a = make_novel("A", tags=["x", "p", "q", "r", "s"])
    b = make_novel("B", tags=["x", "p", "q"])
    make_novel("C", tags=["p"], is_published=False)
    return a, b


def test_empty_candidates(db_session, romance_catalog):
    """No candidates, no related tags, no error."""
    assert related_tags(db_session, [], [], 10) == []


def test_excludes_selected_tags(db_session, romance_catalog):
    """Selected tags never come back."""
    ids = [n.id for n in romance_catalog]
    romance = tag_id(db_session, "romance")

    result = related_tags(db_session, ids, [romance], 10)

    assert "romance" not in [t.slug for t in result]
    assert summary(result) == [("billionaire", 2), ("ceo", 2)]


def test_ranking_and_tie_breaks(db_session, tie_catalog):
    """co-occurrence desc, then global count desc, then name asc."""
    ids = [n.id for n in tie_catalog]
    x = tag_id(db_session, "x")

    result = related_tags(db_session, ids, [x], 10)

    assert summary(result) == [("p", 2), ("q", 2), ("r", 1), ("s", 1)]


def test_limit(db_session, tie_catalog):
    """Results are truncated to limit."""
    ids = [n.id for n in tie_catalog]

    result = related_tags(db_session, ids, [tag_id(db_session, "x")], 2)

    assert summary(result) == [("p", 2), ("q", 2)]


def test_database_aggregate_matches_in_memory(db_session, tie_catalog, monkeypatch):
    """Both counting strategies return the same ranking."""
    ids = [n.id for n in tie_catalog]
    x = tag_id(db_session, "x")

    in_memory = related_tags(db_session, ids, [x], 10)
    monkeypatch.setattr(settings, "related_in_memory_threshold", 0)
    aggregated = related_tags(db_session, ids, [x], 10)

    assert summary(aggregated) == summary(in_memory)


def test_subquery_candidates(db_session, romance_catalog):
    """A SELECT of novel ids is counted in the database."""
    romance = tag_id(db_session, "romance")
    ceo = tag_id(db_session, "ceo")

    result = related_tags(db_session, matching_novel_ids([romance, ceo]), [romance, ceo], 10)

    assert summary(result) == [("billionaire", 1)]


def test_orphan_tags_are_skipped(db_session, romance_catalog):
    """A tag whose count is zero is never recommended."""
    ids = [n.id for n in romance_catalog]
    db_session.query(Tag).filter(Tag.name == "ceo").update({"count": 0})
    db_session.commit()

    result = related_tags(db_session, ids, [tag_id(db_session, "romance")], 10)

    assert summary(result) == [("billionaire", 2)]


def test_parse_tag_list():
    """Comma-separated input is normalized and de-duplicated."""
    assert parse_tag_list("ceo, Billionaire,,ceo") == ["ceo", "billionaire"]
    assert parse_tag_list("") == []
    assert parse_tag_list(None) == []
    with pytest.raises(InvalidArgument):
        parse_tag_list("ceo,???")


def test_parse_limit():
    """Query-string limits are integers or absent."""
    assert parse_limit(None) is None
    assert parse_limit("  ") is None
    assert parse_limit(" 7 ") == 7
    with pytest.raises(InvalidArgument):
        parse_limit("ten")
    with pytest.raises(InvalidArgument):
        parse_limit("2.5")


def test_selection_over_whole_catalog(db_session, romance_catalog):
    """/tags/related semantics: candidates are every match, not a page."""
    result = related_tags_for_selection(db_session, "romance,ceo")

    assert summary(result) == [("billionaire", 1)]


def test_selection_with_category(db_session, make_novel, category):
    """Category narrows the candidate set; matched by slug or name."""
    make_novel(tags=["ceo", "office"], category_id=category.id)
    make_novel(tags=["ceo", "mafia"])

    by_slug = related_tags_for_selection(db_session, "ceo", category="romance")
    by_name = related_tags_for_selection(db_session, "ceo", category="ROMANCE")

    assert summary(by_slug) == [("office", 1)]
    assert summary(by_name) == summary(by_slug)


def test_selection_unknown_category(db_session, romance_catalog):
    """An unknown category is reported, not ignored."""
    with pytest.raises(NotFound):
        related_tags_for_selection(db_session, "romance", category="sci-fi")


def test_selection_requires_tags(db_session):
    """Missing or empty tags parameter."""
    with pytest.raises(InvalidArgument):
        related_tags_for_selection(db_session, None)
    with pytest.raises(InvalidArgument):
        related_tags_for_selection(db_session, " , ")


@pytest.mark.parametrize("limit", [0, -1, 51])
def test_selection_limit_bounds(db_session, romance_catalog, limit):
    """limit must be within 1..50."""
    with pytest.raises(InvalidArgument):
        related_tags_for_selection(db_session, "romance", limit=limit)


def test_selection_unknown_tags(db_session, romance_catalog):
    """Unresolved slugs are listed."""
    with pytest.raises(TagsNotFound) as exc_info:
        related_tags_for_selection(db_session, "romance,pirates")
    assert exc_info.value.missing_slugs == ["pirates"]
