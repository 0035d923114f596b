"""
Novel routes.
Tag editing and engagement counters.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storytags.database import get_db
from storytags.exceptions import TagDiscoveryError
from storytags.routes.common import http_error
from storytags.schemas import (
    NovelStatsResponse,
    NovelTagsResponse,
    NovelTagsUpdate,
    TagResponse,
)
from storytags.services.engagement import record_view
from storytags.services.tags import get_novel_tags, set_novel_tags

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/novels", tags=["novels"])


@router.get(
    "/{novel_id}/tags",
    response_model=NovelTagsResponse,
    response_model_exclude_none=True,
)
def list_novel_tags(novel_id: int, db: Session = Depends(get_db)):
    """Tags of a novel."""
    try:
        tags = get_novel_tags(db, novel_id)
    except TagDiscoveryError as e:
        raise http_error(e)

    return NovelTagsResponse(tags=[TagResponse.model_validate(t) for t in tags])


@router.put("/{novel_id}/tags", response_model=NovelTagsResponse)
def update_novel_tags(
    novel_id: int,
    body: NovelTagsUpdate,
    db: Session = Depends(get_db),
):
    """
    Replace a novel's tags.

    - Tags are normalized ("High School" -> "high-school") and de-duplicated
    - 400 listing every rule the list breaks (too many, invalid)
    - Only added/removed tags touch the tag counters
    """
    try:
        tags = set_novel_tags(db, novel_id, body.tags)
    except TagDiscoveryError as e:
        raise http_error(e)

    return NovelTagsResponse(
        success=True,
        tags=[TagResponse.model_validate(t) for t in tags],
    )


@router.post("/{novel_id}/views", response_model=NovelStatsResponse)
def add_view(novel_id: int, db: Session = Depends(get_db)):
    """Count a view and refresh the novel's hot score."""
    try:
        novel = record_view(db, novel_id)
    except TagDiscoveryError as e:
        raise http_error(e)

    return NovelStatsResponse.model_validate(novel)
