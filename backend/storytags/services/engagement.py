"""
Engagement counters.
Every change to a hot score input refreshes the cached score in the same transaction.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from storytags.exceptions import InvalidArgument, NotFound
from storytags.models import Novel
from storytags.services.hot_score import refresh_hot_score
from storytags.services.tag_storage import storage_errors

logger = logging.getLogger(__name__)


def _apply(db: Session, novel_id: int, values: dict, operation: str) -> Novel:
    """
    Atomic column update, then recompute hot_score from the fresh row.
    """
    try:
        with storage_errors(operation):
            updated = (
                db.query(Novel)
                .filter(Novel.id == novel_id)
                .update(values, synchronize_session=False)
            )
            if not updated:
                raise NotFound("Novel not found")

            novel = (
                db.query(Novel)
                .populate_existing()
                .filter(Novel.id == novel_id)
                .one()
            )
            refresh_hot_score(novel)
            db.commit()
    except Exception:
        db.rollback()
        raise

    return novel


def record_view(db: Session, novel_id: int) -> Novel:
    """Count one view."""
    return _apply(db, novel_id, {Novel.view_count: Novel.view_count + 1}, "view count")


def adjust_bookmark_count(db: Session, novel_id: int, delta: int) -> Novel:
    """Add or remove bookmarks (count never goes below zero)."""
    new_count = case(
        (Novel.bookmark_count + delta < 0, 0),
        else_=Novel.bookmark_count + delta,
    )
    return _apply(db, novel_id, {Novel.bookmark_count: new_count}, "bookmark count")


def set_total_chapters(
    db: Session,
    novel_id: int,
    total_chapters: int,
    updated_at: Optional[datetime] = None,
) -> Novel:
    """
    Record a chapter publish/removal.
    This is a content update, so updated_at moves too.
    """
    if total_chapters < 0:
        raise InvalidArgument("total_chapters cannot be negative")

    values = {
        Novel.total_chapters: total_chapters,
        Novel.updated_at: updated_at or datetime.utcnow(),
    }
    novel = _apply(db, novel_id, values, "chapter count")
    logger.debug(f"Novel {novel_id}: {total_chapters} chapters, hot_score={novel.hot_score:.2f}")
    return novel
