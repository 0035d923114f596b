"""
Storage access for tags and tagged novels.

Narrow read/write layer the discovery services are built on:
- Tag lookup, upsert and atomic count updates
- Tag-intersection novel queries (every tag required)
- Co-occurrence aggregation over a candidate novel set

SQLAlchemy connectivity errors surface as StorageUnavailable; nothing here retries.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import case, exists, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.sql import Select

from storytags.exceptions import StorageUnavailable
from storytags.models import Novel, Tag, novel_tags

logger = logging.getLogger(__name__)

CandidateIds = Union[Sequence[int], Select]


@contextmanager
def storage_errors(operation: str):
    """Translate connectivity failures into StorageUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Storage unavailable during {operation}: {e}")
        raise StorageUnavailable(f"Database unavailable during {operation}") from e


@contextmanager
def read_snapshot(db: Session):
    """
    Run several reads against one SQLite snapshot.

    pysqlite only opens a transaction before writes, so back-to-back SELECTs
    each see the latest commit. An explicit deferred BEGIN pins the snapshot
    at the first read until the block exits.
    Inside an already open transaction the block just joins it.
    """
    with storage_errors("read transaction"):
        conn = db.connection()
        dbapi_conn = conn.connection.dbapi_connection
        owns_transaction = not dbapi_conn.in_transaction
        if owns_transaction:
            conn.exec_driver_sql("BEGIN DEFERRED")

    if not owns_transaction:
        yield
        return

    try:
        yield
    except Exception:
        if dbapi_conn.in_transaction:
            conn.exec_driver_sql("ROLLBACK")
        raise
    else:
        if dbapi_conn.in_transaction:
            with storage_errors("read transaction"):
                conn.exec_driver_sql("COMMIT")


# === Tags ===

def find_tags_by_slugs(db: Session, slugs: Iterable[str], include_orphans: bool = False) -> List[Tag]:
    """
    Fetch tags by slug.
    Orphan tags (count <= 0) are skipped unless include_orphans is set.
    """
    slugs = list(slugs)
    if not slugs:
        return []

    with storage_errors("tag lookup"):
        query = db.query(Tag).filter(Tag.slug.in_(slugs))
        if not include_orphans:
            query = query.filter(Tag.count > 0)
        return query.all()


def upsert_tag(db: Session, name: str, increment_existing: bool = False) -> Tag:
    """
    Create the tag with count=1, or return the existing one.

    With increment_existing the existing row's count is bumped in the same
    statement (INSERT ... ON CONFLICT DO UPDATE), so concurrent attaches of
    the same tag never lose an update.
    Doesn't commit - the caller owns the transaction.
    """
    stmt = sqlite_insert(Tag.__table__).values(name=name, slug=name, count=1)
    if increment_existing:
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={"count": Tag.__table__.c.count + 1},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=["name"])

    with storage_errors("tag upsert"):
        db.execute(stmt)
        return (
            db.query(Tag)
            .populate_existing()
            .filter(Tag.name == name)
            .one()
        )


def _clamped_count(delta: int):
    """SQL expression for count + delta, never below zero."""
    return case((Tag.count + delta < 0, 0), else_=Tag.count + delta)


def increment_tag_count(db: Session, tag_id: int, delta: int) -> None:
    """
    Atomically add delta to a tag's count (floor 0).
    Doesn't commit - the caller owns the transaction.
    """
    with storage_errors("tag count update"):
        db.query(Tag).filter(Tag.id == tag_id).update(
            {Tag.count: _clamped_count(delta)},
            synchronize_session=False,
        )


def decrement_tag_counts(db: Session, tag_ids: Sequence[int]) -> None:
    """Atomically decrement several tags by one (floor 0)."""
    if not tag_ids:
        return
    with storage_errors("tag count update"):
        db.query(Tag).filter(Tag.id.in_(list(tag_ids))).update(
            {Tag.count: _clamped_count(-1)},
            synchronize_session=False,
        )


# === Tag-intersection queries ===

def matching_novel_criteria(tag_ids: Sequence[int], category_id: Optional[int] = None) -> list:
    """
    WHERE criteria for visible novels carrying every tag in tag_ids.
    One EXISTS per tag: AND semantics, never OR.
    """
    criteria = [
        Novel.is_published == True,  # noqa: E712
        Novel.is_banned == False,  # noqa: E712
    ]
    for tag_id in tag_ids:
        # Own alias per tag so it never correlates with an outer novel_tags
        link = novel_tags.alias()
        criteria.append(
            exists().where(
                link.c.novel_id == Novel.id,
                link.c.tag_id == tag_id,
            )
        )
    if category_id is not None:
        criteria.append(Novel.category_id == category_id)
    return criteria


def matching_novel_ids(tag_ids: Sequence[int], category_id: Optional[int] = None) -> Select:
    """SELECT of the ids of every matching novel, for use as a subquery."""
    return select(Novel.id).where(*matching_novel_criteria(tag_ids, category_id))


def find_novels_matching_all_tags(
    db: Session,
    tag_ids: Sequence[int],
    category_id: Optional[int],
    order_by,
    offset: int,
    limit: int,
) -> List[Novel]:
    """
    One page of visible novels carrying every tag, ordered by order_by
    with id ascending as the tie-break.
    """
    with storage_errors("novel search"):
        return (
            db.query(Novel)
            .options(joinedload(Novel.category), selectinload(Novel.tags))
            .filter(*matching_novel_criteria(tag_ids, category_id))
            .order_by(order_by.desc(), Novel.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )


def count_novels_matching_all_tags(
    db: Session,
    tag_ids: Sequence[int],
    category_id: Optional[int] = None,
) -> int:
    """Number of visible novels carrying every tag."""
    with storage_errors("novel count"):
        return (
            db.query(func.count(Novel.id))
            .filter(*matching_novel_criteria(tag_ids, category_id))
            .scalar()
        ) or 0


# === Co-occurrence ===

def count_co_occurrence(
    db: Session,
    candidate_novel_ids: CandidateIds,
    exclude_tag_ids: Sequence[int],
    limit: int,
) -> List[Tuple[Tag, int]]:
    """
    GROUP BY aggregate: how many candidate novels carry each tag.

    candidate_novel_ids is either a list of ids or a SELECT of novel ids,
    so large candidate sets never leave the database.

    Returns:
        (Tag, co_occurrence) pairs ordered by co-occurrence desc,
        global count desc, name asc
    """
    co_occurrence = func.count(novel_tags.c.novel_id).label("co_occurrence")

    with storage_errors("co-occurrence count"):
        query = (
            db.query(Tag, co_occurrence)
            .join(novel_tags, novel_tags.c.tag_id == Tag.id)
            .filter(novel_tags.c.novel_id.in_(candidate_novel_ids))
            .filter(Tag.count > 0)
        )
        if exclude_tag_ids:
            query = query.filter(Tag.id.notin_(list(exclude_tag_ids)))

        rows = (
            query
            .group_by(Tag.id)
            .order_by(co_occurrence.desc(), Tag.count.desc(), Tag.name.asc())
            .limit(limit)
            .all()
        )

    return [(tag, count) for tag, count in rows]


def tag_ids_for_novels(db: Session, novel_ids: Sequence[int]) -> List[int]:
    """One tag id per (novel, tag) association row of the given novels."""
    if not novel_ids:
        return []
    with storage_errors("association lookup"):
        rows = (
            db.query(novel_tags.c.tag_id)
            .filter(novel_tags.c.novel_id.in_(list(novel_ids)))
            .all()
        )
    return [tag_id for (tag_id,) in rows]
