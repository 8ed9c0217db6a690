from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from newsroom.database import Base


class NewsStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class BlockType(str, enum.Enum):
    TEXT = "text"
    HEADING = "heading"
    IMAGE = "image"
    QUOTE = "quote"
    VIDEO = "video"
    EMBED = "embed"


# ---------------------------------------------------------------------------
# Association table: News <-> Tag (many-to-many)
# ---------------------------------------------------------------------------
news_tags = Table(
    "news_tags",
    Base.metadata,
    Column("news_id", Integer, ForeignKey("news.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# Author
# ---------------------------------------------------------------------------
class Author(Base):
    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Category (self-referencing hierarchy)
# ---------------------------------------------------------------------------
class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Section (editorial front-page sections, read-only over the API)
# ---------------------------------------------------------------------------
class Section(Base):
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------
class News(Base):
    __tablename__ = "news"

    __table_args__ = (
        # Public feed ordering (published first, newest first)
        Index("ix_news_status_published_at", "status", "published_at"),
        Index("ix_news_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=NewsStatus.DRAFT.value, nullable=False
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # Nullable until resolved; the UNIQUE constraint is the final authority on collisions.
    canonical_slug: Mapped[Optional[str]] = mapped_column(
        String(350), unique=True, nullable=True, index=True
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    author_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("authors.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    main_category_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    # Relationships: lazy="noload" everywhere; services load explicitly.
    author: Mapped[Optional["Author"]] = relationship("Author", lazy="noload")
    category: Mapped[Optional["Category"]] = relationship("Category", lazy="noload")
    blocks: Mapped[List["NewsBlock"]] = relationship(
        "NewsBlock", order_by="NewsBlock.position", lazy="noload", passive_deletes=True
    )
    images: Mapped[List["NewsImage"]] = relationship(
        "NewsImage", order_by="NewsImage.position", lazy="noload", passive_deletes=True
    )
    tags: Mapped[List["Tag"]] = relationship(
        "Tag", secondary=news_tags, order_by="Tag.name", lazy="noload", passive_deletes=True
    )
    related_links: Mapped[List["NewsRelated"]] = relationship(
        "NewsRelated",
        foreign_keys="NewsRelated.news_id",
        lazy="noload",
        passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# Blocks and images (owned by News)
# ---------------------------------------------------------------------------
class NewsBlock(Base):
    __tablename__ = "news_blocks"
    __table_args__ = (CheckConstraint("position >= 0", name="ck_news_blocks_position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class NewsImage(Base):
    __tablename__ = "news_images"
    __table_args__ = (CheckConstraint("position >= 0", name="ck_news_images_position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Related news (directed News -> News link)
# ---------------------------------------------------------------------------
class NewsRelated(Base):
    __tablename__ = "news_related"

    news_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news.id", ondelete="CASCADE"), primary_key=True
    )
    related_news_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("news.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    relation_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    related: Mapped["News"] = relationship("News", foreign_keys=[related_news_id], lazy="noload")
