"""
Hot score calculation.
Ranks novels by engagement with decay for age and for time since the last update.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from storytags.models import Novel

logger = logging.getLogger(__name__)

# Weights
VIEW_WEIGHT = 0.1
BOOKMARK_WEIGHT = 5.0
CHAPTER_WEIGHT = 2.0
CREATED_DECAY_PER_DAY = 0.5
UPDATED_DECAY_PER_DAY = 1.0

SECONDS_PER_DAY = 24 * 60 * 60

RECOMPUTE_BATCH_SIZE = 500


def days_since(moment: Optional[datetime], now: datetime) -> float:
    """
    Fractional days elapsed between moment and now.
    Timestamps in the future (clock skew) count as zero.
    """
    if moment is None:
        return 0.0
    return max(0.0, (now - moment).total_seconds() / SECONDS_PER_DAY)


def calculate_hot_score(
    view_count: Optional[int] = 0,
    bookmark_count: Optional[int] = 0,
    total_chapters: Optional[int] = 0,
    created_at: Optional[datetime] = None,
    updated_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> float:
    """
    Compute the hot score from raw counters and timestamps.

    score = views*0.1 + bookmarks*5 + chapters*2
            - days_since(created_at)*0.5 - days_since(updated_at)*1.0

    Floored at 0 so stale novels never sort below newer, equally quiet ones.
    Timestamps are naive UTC, like the rest of the schema.
    """
    now = now or datetime.utcnow()

    score = (
        (view_count or 0) * VIEW_WEIGHT
        + (bookmark_count or 0) * BOOKMARK_WEIGHT
        + (total_chapters or 0) * CHAPTER_WEIGHT
        - days_since(created_at, now) * CREATED_DECAY_PER_DAY
        - days_since(updated_at, now) * UPDATED_DECAY_PER_DAY
    )

    return max(0.0, score)


def hot_score_for(novel: Novel, now: Optional[datetime] = None) -> float:
    """Hot score for a Novel row."""
    return calculate_hot_score(
        view_count=novel.view_count,
        bookmark_count=novel.bookmark_count,
        total_chapters=novel.total_chapters,
        created_at=novel.created_at,
        updated_at=novel.updated_at,
        now=now,
    )


def refresh_hot_score(novel: Novel, now: Optional[datetime] = None) -> float:
    """
    Recompute and store the cached score on the novel.
    Doesn't commit - the caller owns the transaction.
    """
    novel.hot_score = hot_score_for(novel, now)
    return novel.hot_score


def recompute_hot_scores(db: Session, now: Optional[datetime] = None) -> int:
    """
    Refresh the cached score of every novel.

    Uses one reference time for the whole run so scores stay comparable.

    Returns:
        Number of novels whose stored score changed
    """
    now = now or datetime.utcnow()
    changed = 0
    last_id = 0

    while True:
        batch = (
            db.query(Novel)
            .filter(Novel.id > last_id)
            .order_by(Novel.id)
            .limit(RECOMPUTE_BATCH_SIZE)
            .all()
        )
        if not batch:
            break

        for novel in batch:
            score = hot_score_for(novel, now)
            if novel.hot_score != score:
                novel.hot_score = score
                changed += 1
        last_id = batch[-1].id
        db.flush()

    db.commit()
    logger.info(f"Hot scores recomputed: {changed} novels changed")
    return changed
