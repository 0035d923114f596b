"""Tests for engagement counters and the cached hot score."""
from datetime import datetime, timedelta

import pytest

from storytags.exceptions import InvalidArgument, NotFound
from storytags.services.engagement import (
    adjust_bookmark_count,
    record_view,
    set_total_chapters,
)


def test_record_view(db_session, make_novel):
    """Views increment and the score follows."""
    novel = make_novel(view_count=9)

    updated = record_view(db_session, novel.id)

    assert updated.view_count == 10
    assert updated.hot_score == pytest.approx(1.0, abs=0.01)


def test_bookmarks(db_session, make_novel):
    """Each bookmark is worth five points."""
    novel = make_novel()

    updated = adjust_bookmark_count(db_session, novel.id, 2)

    assert updated.bookmark_count == 2
    assert updated.hot_score == pytest.approx(10, abs=0.01)


def test_bookmarks_floor_at_zero(db_session, make_novel):
    """Removing more bookmarks than exist stops at zero."""
    novel = make_novel(bookmark_count=1)

    updated = adjust_bookmark_count(db_session, novel.id, -3)

    assert updated.bookmark_count == 0
    assert updated.hot_score == 0.0


def test_set_total_chapters_moves_updated_at(db_session, make_novel):
    """A chapter change is a content update."""
    long_ago = datetime.utcnow() - timedelta(days=40)
    novel = make_novel(created_at=long_ago, updated_at=long_ago)
    now = datetime.utcnow()

    updated = set_total_chapters(db_session, novel.id, 30, updated_at=now)

    assert updated.total_chapters == 30
    assert updated.updated_at == now
    # 30*2 - 40*0.5
    assert updated.hot_score == pytest.approx(40, abs=0.01)


def test_set_total_chapters_rejects_negative(db_session, make_novel):
    """Chapter totals can't go below zero."""
    novel = make_novel()

    with pytest.raises(InvalidArgument):
        set_total_chapters(db_session, novel.id, -1)


@pytest.mark.parametrize("action", [
    lambda db: record_view(db, 404),
    lambda db: adjust_bookmark_count(db, 404, 1),
    lambda db: set_total_chapters(db, 404, 3),
])
def test_unknown_novel(db_session, action):
    """Counters on a missing novel raise NotFound."""
    with pytest.raises(NotFound):
        action(db_session)


def test_score_change_reorders_search(db_session, make_novel):
    """The refreshed score is what the hot sort reads."""
    from storytags.services.tag_discovery import search_novels_by_tags

    first = make_novel(tags=["isekai"])
    second = make_novel(tags=["isekai"])
    adjust_bookmark_count(db_session, second.id, 1)

    result = search_novels_by_tags(db_session, "isekai", sort="hot")

    assert [n.id for n in result.novels] == [second.id, first.id]
