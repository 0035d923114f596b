"""
Related tag recommendations.
Ranks tags by how many novels of a candidate set also carry them.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from storytags.config import settings
from storytags.exceptions import InvalidArgument, NotFound, TagsNotFound
from storytags.models import Category, Tag
from storytags.services.tag_normalizer import normalize_tag
from storytags.services.tag_storage import (
    CandidateIds,
    count_co_occurrence,
    find_tags_by_slugs,
    matching_novel_ids,
    read_snapshot,
    storage_errors,
    tag_ids_for_novels,
)

logger = logging.getLogger(__name__)


@dataclass
class RelatedTag:
    """A tag co-occurring with the current selection."""
    id: int
    name: str
    slug: str
    co_occurrence: int


def _rank_key(tag: Tag, co_occurrence: int):
    return (-co_occurrence, -(tag.count or 0), tag.name)


def related_tags(
    db: Session,
    candidate_novel_ids: CandidateIds,
    exclude_tag_ids: Sequence[int],
    limit: int,
) -> List[RelatedTag]:
    """
    Tags carried by the candidate novels, most shared first.

    - Excludes the selected tags and orphan tags
    - co_occurrence = number of candidates carrying the tag
    - Ties broken by global usage count desc, then name asc

    Small id lists are counted in memory from their association rows;
    large lists and SELECT subqueries go through a GROUP BY in the database.
    """
    if limit <= 0:
        return []

    if isinstance(candidate_novel_ids, Select):
        rows = count_co_occurrence(db, candidate_novel_ids, exclude_tag_ids, limit)
        return [RelatedTag(t.id, t.name, t.slug, co) for t, co in rows]

    candidate_ids = list(dict.fromkeys(candidate_novel_ids))
    if not candidate_ids:
        return []

    if len(candidate_ids) > settings.related_in_memory_threshold:
        rows = count_co_occurrence(db, candidate_ids, exclude_tag_ids, limit)
        return [RelatedTag(t.id, t.name, t.slug, co) for t, co in rows]

    excluded = set(exclude_tag_ids)
    counts = Counter(
        tag_id for tag_id in tag_ids_for_novels(db, candidate_ids)
        if tag_id not in excluded
    )
    if not counts:
        return []

    with storage_errors("related tag lookup"):
        tags = (
            db.query(Tag)
            .filter(Tag.id.in_(list(counts)))
            .filter(Tag.count > 0)
            .all()
        )

    ranked = sorted(tags, key=lambda t: _rank_key(t, counts[t.id]))[:limit]
    return [RelatedTag(t.id, t.name, t.slug, counts[t.id]) for t in ranked]


def parse_tag_list(raw: Optional[str]) -> List[str]:
    """
    Split a comma-separated tag parameter into normalized, unique slugs.

    Blank entries are skipped; an entry that normalizes to nothing
    ("!!!") is rejected rather than silently dropped.
    """
    if not raw:
        return []

    slugs = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        slug = normalize_tag(part)
        if not slug:
            raise InvalidArgument(f"Invalid tag: '{part}'")
        if slug not in slugs:
            slugs.append(slug)
    return slugs


def parse_limit(raw: Optional[str]) -> Optional[int]:
    """Query-string limit as an int; None when absent or blank."""
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise InvalidArgument("Parameter 'limit' must be an integer")


def resolve_tags(db: Session, slugs: Sequence[str]) -> List[Tag]:
    """
    Resolve every slug or fail.
    Returned in request order; raises TagsNotFound naming each missing slug.
    """
    tags = find_tags_by_slugs(db, slugs)
    by_slug = {t.slug: t for t in tags}

    missing = [s for s in slugs if s not in by_slug]
    if missing:
        logger.warning(f"Tag lookup failed for: {missing}")
        raise TagsNotFound(missing)

    return [by_slug[s] for s in slugs]


def find_category(db: Session, value: str) -> Category:
    """Category by slug or name, case-insensitive."""
    needle = value.strip().lower()
    with storage_errors("category lookup"):
        category = (
            db.query(Category)
            .filter(
                (Category.slug == needle) | (func.lower(Category.name) == needle)
            )
            .order_by(Category.id)
            .first()
        )
    if not category:
        raise NotFound(f"Category '{value}' not found")
    return category


def related_tags_for_selection(
    db: Session,
    tags_param: Optional[str],
    category: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[RelatedTag]:
    """
    Related tags for a tag selection over the whole catalog.

    Candidates are every visible novel carrying all selected tags
    (optionally within a category); counting stays in the database.
    """
    if limit is None:
        limit = settings.related_tags_default_limit
    if limit < 1 or limit > settings.related_tags_max_limit:
        raise InvalidArgument(
            f"Parameter 'limit' must be between 1 and {settings.related_tags_max_limit}"
        )

    slugs = parse_tag_list(tags_param)
    if not slugs:
        raise InvalidArgument("Parameter 'tags' is required")

    with read_snapshot(db):
        selected = resolve_tags(db, slugs)
        category_id = find_category(db, category).id if category else None

        selected_ids = [t.id for t in selected]
        candidates = matching_novel_ids(selected_ids, category_id)

        result = related_tags(db, candidates, selected_ids, limit)
    logger.debug(f"Related tags for {slugs} (category={category}): {len(result)}")
    return result
