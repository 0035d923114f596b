"""
Tag routes.
Tag-intersection search, related tags, popular tags and autocomplete.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from storytags.config import settings
from storytags.database import get_db
from storytags.exceptions import TagDiscoveryError
from storytags.models import Novel
from storytags.routes.common import http_error, limiter
from storytags.schemas import (
    NovelCard,
    PopularTagsResponse,
    RelatedTagResponse,
    RelatedTagsResponse,
    TagResponse,
    TagSearchResponse,
    TagSuggestion,
)
from storytags.services.related_tags import (
    find_category,
    parse_limit,
    related_tags_for_selection,
)
from storytags.services.tag_discovery import DEFAULT_SORT, search_novels_by_tags
from storytags.services.tags import popular_tags, suggest_tags

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tags", tags=["tags"])

# Tags shown per novel card
CARD_TAG_LIMIT = 5


def novel_card(novel: Novel) -> NovelCard:
    """Search result entry with at most CARD_TAG_LIMIT tags."""
    card = NovelCard.model_validate(novel)
    return card.model_copy(update={"tags": card.tags[:CARD_TAG_LIMIT]})


@router.get("/related", response_model=RelatedTagsResponse)
@limiter.limit(settings.search_rate_limit)
def get_related_tags(
    request: Request,
    tags: Optional[str] = Query(None, description="Selected tag slugs, comma-separated"),
    category: Optional[str] = Query(None, description="Category slug or name"),
    limit: Optional[str] = Query(None, description="Number of tags (1-50, default 10)"),
    db: Session = Depends(get_db),
):
    """
    Tags that most often appear together with all of the selected tags.

    - 400 if tags is missing/empty or limit is not an integer in range
    - 404 if a selected tag (or the category) does not exist
    """
    try:
        result = related_tags_for_selection(
            db, tags, category=category, limit=parse_limit(limit)
        )
    except TagDiscoveryError as e:
        raise http_error(e)

    return RelatedTagsResponse(
        data=[RelatedTagResponse.model_validate(t) for t in result]
    )


@router.get("/popular", response_model=PopularTagsResponse)
def get_popular_tags(
    category: Optional[str] = Query(None, description="Category slug or name"),
    limit: int = Query(settings.popular_tags_default_limit, ge=1, description="Number of tags"),
    db: Session = Depends(get_db),
):
    """
    Most used tags among visible novels.
    With a category, counts only that category's novels.
    """
    limit = min(limit, settings.popular_tags_max_limit)

    try:
        rows = popular_tags(db, category=category, limit=limit)
    except TagDiscoveryError as e:
        raise http_error(e)

    return PopularTagsResponse(
        data=[
            TagResponse(id=tag.id, name=tag.name, slug=tag.slug, count=usage)
            for tag, usage in rows
        ]
    )


@router.get("/suggest", response_model=List[TagSuggestion])
def get_tag_suggestions(
    q: Optional[str] = Query(None, description="Tag prefix"),
    limit: int = Query(settings.suggest_tags_default_limit, ge=1, description="Number of suggestions"),
    db: Session = Depends(get_db),
):
    """Autocomplete tag names by prefix, most used first."""
    limit = min(limit, settings.suggest_tags_max_limit)

    try:
        tags = suggest_tags(db, q, limit=limit)
    except TagDiscoveryError as e:
        raise http_error(e)

    return [TagSuggestion.model_validate(t) for t in tags]


@router.get("/{slug}", response_model=TagSearchResponse)
@limiter.limit(settings.search_rate_limit)
def search_by_tags(
    request: Request,
    slug: str,
    tags: Optional[str] = Query(None, description="Extra tag slugs, comma-separated"),
    sort: str = Query(DEFAULT_SORT, description="hot | bookmarks | views"),
    page: int = Query(1, description="Page number (1-indexed)"),
    category: Optional[str] = Query(None, description="Category slug or name"),
    db: Session = Depends(get_db),
):
    """
    Novels carrying the path tag and every extra tag.

    - Ordered by the sort field desc, then id
    - 24 novels per page
    - relatedTags: tags co-occurring with the novels on this page
    - 400 on invalid sort, 404 listing tags that don't exist
    """
    extra = tags.split(",") if tags else []

    try:
        category_id = find_category(db, category).id if category else None
        result = search_novels_by_tags(
            db,
            slug,
            extra,
            sort=sort,
            page=page,
            category_id=category_id,
        )
    except TagDiscoveryError as e:
        raise http_error(e)

    return TagSearchResponse(
        novels=[novel_card(n) for n in result.novels],
        related_tags=[RelatedTagResponse.model_validate(t) for t in result.related_tags],
        selected_tags=[TagResponse.model_validate(t) for t in result.selected_tags],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        sort=result.sort,
    )
