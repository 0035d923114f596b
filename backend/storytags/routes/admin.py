"""
Admin routes.
Tag vocabulary maintenance and hot score refresh.
Access control is handled in front of this service.
"""
import os

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storytags.config import settings
from storytags.database import get_db
from storytags.exceptions import TagDiscoveryError
from storytags.models import Novel, Tag
from storytags.routes.common import http_error
from storytags.schemas import MaintenanceResponse, TagSyncResponse
from storytags.services.hot_score import recompute_hot_scores
from storytags.services.tag_storage import storage_errors
from storytags.services.tags import purge_orphan_tags, sync_tag_counts

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/tags/sync-counts", response_model=TagSyncResponse)
def sync_counts(db: Session = Depends(get_db)):
    """
    Recompute every tag's count from the novel <-> tag rows.

    Returns how many counts changed and how many tags are now orphans.
    """
    try:
        report = sync_tag_counts(db)
    except TagDiscoveryError as e:
        raise http_error(e)

    return TagSyncResponse(total=report.total, synced=report.synced, orphaned=report.orphaned)


@router.post("/tags/purge-orphans", response_model=MaintenanceResponse)
def purge_orphans(db: Session = Depends(get_db)):
    """Delete tags no novel carries anymore."""
    try:
        deleted = purge_orphan_tags(db)
    except TagDiscoveryError as e:
        raise http_error(e)

    return MaintenanceResponse(affected=deleted)


@router.post("/hot-scores/recompute", response_model=MaintenanceResponse)
def recompute_scores(db: Session = Depends(get_db)):
    """Refresh the cached hot score of every novel."""
    try:
        changed = recompute_hot_scores(db)
    except TagDiscoveryError as e:
        raise http_error(e)

    return MaintenanceResponse(affected=changed)


@router.get("/status")
def get_status(db: Session = Depends(get_db)):
    """
    Counters for the tag vocabulary and catalog.

    Includes orphan tags waiting for a purge and the database size.
    """
    try:
        with storage_errors("status"):
            tags_count = db.query(Tag).count()
            orphan_tags = db.query(Tag).filter(Tag.count <= 0).count()
            novels_count = db.query(Novel).count()
            visible_novels = (
                db.query(Novel)
                .filter(Novel.is_published == True, Novel.is_banned == False)  # noqa: E712
                .count()
            )
    except TagDiscoveryError as e:
        raise http_error(e)

    # Database size
    db_path = settings.database_path
    db_size_mb = round(os.path.getsize(db_path) / (1024 * 1024), 2) if os.path.exists(db_path) else 0

    return {
        "tags_count": tags_count,
        "orphan_tags": orphan_tags,
        "novels_count": novels_count,
        "visible_novels": visible_novels,
        "db_size_mb": db_size_mb,
    }
