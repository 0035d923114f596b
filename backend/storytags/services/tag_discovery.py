"""
Tag discovery search.
Novels carrying every requested tag, ranked and paginated,
plus the tags that co-occur with the page being shown.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from storytags.config import settings
from storytags.exceptions import InvalidArgument
from storytags.models import Novel, Tag
from storytags.services.related_tags import RelatedTag, related_tags, resolve_tags
from storytags.services.tag_normalizer import normalize_tag
from storytags.services.tag_storage import (
    count_novels_matching_all_tags,
    find_novels_matching_all_tags,
    read_snapshot,
)

logger = logging.getLogger(__name__)

# Sort mode -> ranking column (always descending, id ascending as tie-break)
SORT_COLUMNS = {
    "hot": Novel.hot_score,
    "bookmarks": Novel.bookmark_count,
    "views": Novel.view_count,
}
DEFAULT_SORT = "hot"


@dataclass
class TagSearchResult:
    """One page of a tag-intersection search."""
    novels: List[Novel]
    related_tags: List[RelatedTag]
    selected_tags: List[Tag]
    total: int
    page: int
    page_size: int
    total_pages: int
    sort: str = DEFAULT_SORT


def requested_slugs(primary_slug: str, extra_slugs: Sequence[str]) -> List[str]:
    """
    Primary slug plus extras, normalized and de-duplicated in request order.
    Blank extras are skipped; anything else that normalizes to nothing is rejected.
    """
    slugs = []
    for raw in [primary_slug, *extra_slugs]:
        if raw is None or not raw.strip():
            continue
        slug = normalize_tag(raw)
        if not slug:
            raise InvalidArgument(f"Invalid tag: '{raw}'")
        if slug not in slugs:
            slugs.append(slug)
    return slugs


def search_novels_by_tags(
    db: Session,
    primary_slug: str,
    extra_slugs: Sequence[str] = (),
    sort: str = DEFAULT_SORT,
    page: int = 1,
    category_id: Optional[int] = None,
    page_size: Optional[int] = None,
) -> TagSearchResult:
    """
    Search visible novels that carry every requested tag.

    - Fails with TagsNotFound if any requested slug does not resolve
    - Orders by the sort column desc, then id asc (stable pages)
    - page is 1-indexed and clamped to >= 1
    - related_tags come from the novels on this page only

    Raises:
        InvalidArgument: unknown sort mode or no tags requested
        TagsNotFound: one or more slugs do not exist
    """
    if sort not in SORT_COLUMNS:
        raise InvalidArgument(
            f"Invalid sort parameter. Must be: {', '.join(SORT_COLUMNS)}"
        )

    slugs = requested_slugs(primary_slug, extra_slugs)
    if not slugs:
        raise InvalidArgument("At least one tag is required")

    page_size = page_size or settings.tag_page_size
    page = max(1, page)

    offset = (page - 1) * page_size

    # Tags, total, page and related tags all come from one snapshot
    with read_snapshot(db):
        selected = resolve_tags(db, slugs)
        tag_ids = [t.id for t in selected]

        total = count_novels_matching_all_tags(db, tag_ids, category_id)

        # Past the last page; also keeps huge offsets out of SQLite
        if offset >= total:
            novels = []
        else:
            novels = find_novels_matching_all_tags(
                db,
                tag_ids,
                category_id,
                order_by=SORT_COLUMNS[sort],
                offset=offset,
                limit=page_size,
            )

        related = related_tags(
            db,
            [n.id for n in novels],
            tag_ids,
            settings.related_tags_search_limit,
        )

    logger.debug(
        f"Tag search {slugs} sort={sort} page={page}: "
        f"{len(novels)}/{total} novels, {len(related)} related tags"
    )

    return TagSearchResult(
        novels=novels,
        related_tags=related,
        selected_tags=selected,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
        sort=sort,
    )
