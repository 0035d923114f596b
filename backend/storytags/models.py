"""
ORM models for the tag discovery schema.
Novels, categories, tags and the novel <-> tag association.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean,
    ForeignKey, CheckConstraint, Float, Index, Table
)
from sqlalchemy.orm import relationship

from storytags.database import Base


# Many-to-many, unordered, one row per (novel, tag) pair
novel_tags = Table(
    "novel_tags",
    Base.metadata,
    Column("novel_id", Integer, ForeignKey("novels.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

Index("idx_novel_tags_tag", novel_tags.c.tag_id, novel_tags.c.novel_id)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    novels = relationship("Novel", back_populates="category")


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (
        CheckConstraint("count >= 0", name="tag_count_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(30), unique=True, nullable=False)
    slug = Column(String(30), unique=True, nullable=False)
    count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    novels = relationship("Novel", secondary=novel_tags, back_populates="tags")


Index("idx_tags_count", Tag.count.desc())


class Novel(Base):
    __tablename__ = "novels"

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    author_name = Column(Text)
    blurb = Column(Text)
    status = Column(String(20), default="ongoing")  # ongoing, completed, hiatus
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"))

    # Visibility
    is_published = Column(Boolean, default=False, nullable=False)
    is_banned = Column(Boolean, default=False, nullable=False)

    # Engagement counters
    view_count = Column(Integer, default=0, nullable=False)
    bookmark_count = Column(Integer, default=0, nullable=False)
    total_chapters = Column(Integer, default=0, nullable=False)

    # Cached ranking score, see services.hot_score
    hot_score = Column(Float, default=0.0, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)  # last content update

    # Relationships
    category = relationship("Category", back_populates="novels")
    tags = relationship("Tag", secondary=novel_tags, back_populates="novels", order_by="Tag.name")


# Indexes for the sort modes (partial on visible novels)
Index("idx_novels_hot", Novel.hot_score.desc(), Novel.id,
      sqlite_where=(Novel.is_published == True) & (Novel.is_banned == False))
Index("idx_novels_bookmarks", Novel.bookmark_count.desc(), Novel.id,
      sqlite_where=(Novel.is_published == True) & (Novel.is_banned == False))
Index("idx_novels_views", Novel.view_count.desc(), Novel.id,
      sqlite_where=(Novel.is_published == True) & (Novel.is_banned == False))
Index("idx_novels_category", Novel.category_id)
