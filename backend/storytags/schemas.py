"""
Pydantic schemas for request/response validation.
JSON keys are camelCase (relatedTags, pageSize, coOccurrence...).
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List


class ApiModel(BaseModel):
    """Base schema: camelCase aliases, built from ORM objects"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# === Tags ===

class TagBrief(ApiModel):
    """Tag as embedded in a novel card"""
    id: int
    name: str
    slug: str


class TagResponse(TagBrief):
    """Tag with its global usage count"""
    count: int


class RelatedTagResponse(ApiModel):
    """Tag co-occurring with the current selection"""
    id: int
    name: str
    slug: str
    co_occurrence: int


class RelatedTagsResponse(ApiModel):
    """Response of /tags/related"""
    success: bool = True
    data: List[RelatedTagResponse]


class PopularTagsResponse(ApiModel):
    """Response of /tags/popular"""
    success: bool = True
    data: List[TagResponse]


class TagSuggestion(ApiModel):
    """Autocomplete entry"""
    name: str
    slug: str
    count: int


# === Novels ===

class CategoryBrief(ApiModel):
    """Category as embedded in a novel card"""
    id: int
    name: str
    slug: str


class NovelCard(ApiModel):
    """Novel as listed in search results"""
    id: int
    title: str
    slug: str
    author_name: Optional[str] = None
    blurb: Optional[str] = None
    status: Optional[str] = None
    view_count: int
    bookmark_count: int
    total_chapters: int
    hot_score: float
    created_at: datetime
    updated_at: datetime
    category: Optional[CategoryBrief] = None
    tags: List[TagBrief] = []


class TagSearchResponse(ApiModel):
    """Response of /tags/{slug}"""
    novels: List[NovelCard]
    related_tags: List[RelatedTagResponse]
    selected_tags: List[TagResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    sort: str


class NovelTagsUpdate(ApiModel):
    """Request to replace a novel's tags"""
    tags: List[str] = Field(default_factory=list)


class NovelTagsResponse(ApiModel):
    """A novel's tags"""
    success: Optional[bool] = None
    tags: List[TagResponse]


class NovelStatsResponse(ApiModel):
    """Engagement counters and the cached hot score"""
    id: int
    view_count: int
    bookmark_count: int
    total_chapters: int
    hot_score: float


# === Admin ===

class TagSyncResponse(ApiModel):
    """Result of a tag count sync"""
    ok: bool = True
    total: int
    synced: int
    orphaned: int


class MaintenanceResponse(ApiModel):
    """Result of a maintenance action"""
    ok: bool = True
    affected: int
