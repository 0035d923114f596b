"""
Tag management for novels.
Write path (delta-based tag edits), tag browsing and vocabulary maintenance.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import exists, func
from sqlalchemy.orm import Session, selectinload

from storytags.exceptions import InvalidArgument, NotFound
from storytags.models import Novel, Tag, novel_tags
from storytags.services.related_tags import find_category
from storytags.services.tag_normalizer import normalize_tag, normalize_tags
from storytags.services.tag_storage import (
    decrement_tag_counts,
    storage_errors,
    upsert_tag,
)
from storytags.services.tag_validator import MAX_TAG_LENGTH, validate_tags

logger = logging.getLogger(__name__)


@dataclass
class TagSyncReport:
    """Result of sync_tag_counts()."""
    total: int
    synced: int
    orphaned: int


def _load_novel(db: Session, novel_id: int) -> Novel:
    with storage_errors("novel lookup"):
        novel = (
            db.query(Novel)
            .options(selectinload(Novel.tags))
            .filter(Novel.id == novel_id)
            .first()
        )
    if not novel:
        raise NotFound("Novel not found")
    return novel


def get_novel_tags(db: Session, novel_id: int) -> List[Tag]:
    """Tags of a novel, by name."""
    return list(_load_novel(db, novel_id).tags)


def set_novel_tags(db: Session, novel_id: int, raw_tags: List[str]) -> List[Tag]:
    """
    Replace a novel's tags with raw_tags.

    Only the difference is applied:
    - Tags new to the novel are upserted and their count incremented
    - Tags no longer present are decremented and unlinked
    - Unchanged tags are not touched

    Everything happens in a single transaction.

    Raises:
        InvalidArgument: the normalized list breaks a vocabulary rule (all errors listed)
        NotFound: novel does not exist
    """
    normalized = normalize_tags(raw_tags)
    validation = validate_tags(normalized)
    if not validation.valid:
        raise InvalidArgument(", ".join(validation.errors), validation.errors)

    novel = _load_novel(db, novel_id)

    new_names = set(normalized)
    old_names = {t.name for t in novel.tags}
    to_add = [name for name in normalized if name not in old_names]
    to_remove = [t for t in novel.tags if t.name not in new_names]

    try:
        for name in to_add:
            novel.tags.append(upsert_tag(db, name, increment_existing=True))

        if to_remove:
            decrement_tag_counts(db, [t.id for t in to_remove])
            for tag in to_remove:
                novel.tags.remove(tag)

        with storage_errors("tag update"):
            db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Novel {novel_id} tags updated: +{len(to_add)} -{len(to_remove)} "
        f"({len(normalized)} total)"
    )
    return list(novel.tags)


# === Browsing ===

def popular_tags(
    db: Session,
    category: Optional[str] = None,
    limit: int = 15,
) -> List[Tuple[Tag, int]]:
    """
    Most used tags among visible novels, optionally within one category.

    The count is computed live from the association rows rather than taken
    from Tag.count, so unpublished and banned novels don't inflate it.

    Raises:
        NotFound: category given but unknown
    """
    usage = func.count(Novel.id).label("usage")

    query = (
        db.query(Tag, usage)
        .join(novel_tags, novel_tags.c.tag_id == Tag.id)
        .join(Novel, Novel.id == novel_tags.c.novel_id)
        .filter(Novel.is_published == True)  # noqa: E712
        .filter(Novel.is_banned == False)  # noqa: E712
    )

    if category:
        query = query.filter(Novel.category_id == find_category(db, category).id)

    with storage_errors("popular tags"):
        rows = (
            query
            .group_by(Tag.id)
            .order_by(usage.desc(), Tag.name.asc())
            .limit(limit)
            .all()
        )

    return [(tag, count) for tag, count in rows]


def suggest_tags(db: Session, query: Optional[str], limit: int = 10) -> List[Tag]:
    """
    Autocomplete: tags whose name starts with the normalized query.
    Most used first; orphan tags are never suggested.

    Raises:
        InvalidArgument: query longer than MAX_TAG_LENGTH
    """
    if not query or not query.strip():
        return []

    if len(query.strip()) > MAX_TAG_LENGTH:
        raise InvalidArgument(f"Query too long (max {MAX_TAG_LENGTH} characters)")

    prefix = normalize_tag(query)
    if not prefix:
        return []

    with storage_errors("tag suggestions"):
        return (
            db.query(Tag)
            .filter(Tag.name.startswith(prefix, autoescape=True))
            .filter(Tag.count > 0)
            .order_by(Tag.count.desc(), Tag.name.asc())
            .limit(limit)
            .all()
        )


# === Maintenance ===

def sync_tag_counts(db: Session) -> TagSyncReport:
    """
    Recompute every Tag.count from the association rows.
    Repairs drift left by manual edits or failed writes.
    """
    with storage_errors("tag count sync"):
        actual = dict(
            db.query(novel_tags.c.tag_id, func.count(novel_tags.c.novel_id))
            .group_by(novel_tags.c.tag_id)
            .all()
        )
        tags = db.query(Tag).all()

        synced = 0
        orphaned = 0
        for tag in tags:
            actual_count = actual.get(tag.id, 0)
            if tag.count != actual_count:
                logger.info(f"Tag '{tag.name}': count {tag.count} -> {actual_count}")
                tag.count = actual_count
                synced += 1
            if actual_count == 0:
                orphaned += 1

        db.commit()

    logger.info(f"Tag counts synced: {synced}/{len(tags)} updated, {orphaned} orphaned")
    return TagSyncReport(total=len(tags), synced=synced, orphaned=orphaned)


def purge_orphan_tags(db: Session) -> int:
    """
    Delete tags with count <= 0 that no novel carries.

    Returns:
        Number of tags deleted
    """
    with storage_errors("orphan tag purge"):
        deleted = (
            db.query(Tag)
            .filter(Tag.count <= 0)
            .filter(~exists().where(novel_tags.c.tag_id == Tag.id))
            .delete(synchronize_session=False)
        )
        db.commit()

    logger.info(f"Orphan tags purged: {deleted}")
    return deleted
