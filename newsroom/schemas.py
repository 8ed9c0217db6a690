from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from newsroom.models import BlockType, NewsStatus

# Leaves room for a "-NNN" collision suffix inside News.canonical_slug (String(350)).
SLUG_MAX_LENGTH = 340


# --- Author ---

class AuthorBase(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    email: EmailStr | None = None
    bio: str | None = None
    avatar_url: str | None = Field(None, max_length=500)

    @field_validator("email", mode="after")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v


class AuthorCreate(AuthorBase):
    pass


class AuthorUpdate(AuthorBase):
    name: str | None = Field(None, min_length=1, max_length=150)


class AuthorResponse(AuthorBase):
    id: int
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    slug: str | None = Field(None, max_length=140)
    description: str | None = None
    parent_id: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=120)
    slug: str | None = Field(None, max_length=140)
    description: str | None = None
    parent_id: int | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None
    parent_id: int | None
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Section ---

class SectionResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None
    model_config = ConfigDict(from_attributes=True)


# --- Tag ---

class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=110)


class TagUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=110)


class TagResponse(BaseModel):
    id: int
    name: str
    slug: str
    model_config = ConfigDict(from_attributes=True)


# --- News children ---

class BlockIn(BaseModel):
    type: BlockType
    content: str | None = None
    media_url: str | None = Field(None, max_length=500)
    alt_text: str | None = Field(None, max_length=300)
    position: int | None = Field(None, ge=0)


class ImageIn(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    caption: str | None = Field(None, max_length=500)
    alt_text: str | None = Field(None, max_length=300)
    position: int | None = Field(None, ge=0)


class RelatedRef(BaseModel):
    """A related-news link; a bare integer is accepted as ``{"news_id": n}``."""

    news_id: int
    relation_type: str | None = Field(None, max_length=50)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_id(cls, value):
        if isinstance(value, int):
            return {"news_id": value}
        return value


class BlockResponse(BaseModel):
    id: int
    type: str
    content: str | None
    media_url: str | None
    alt_text: str | None
    position: int
    model_config = ConfigDict(from_attributes=True)


class ImageResponse(BaseModel):
    id: int
    news_id: int
    url: str
    caption: str | None
    alt_text: str | None
    position: int
    model_config = ConfigDict(from_attributes=True)


class RelatedResponse(BaseModel):
    id: int
    title: str
    summary: str | None
    canonical_slug: str | None
    relation_type: str | None


# --- News ---

class NewsFields(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    subtitle: str | None = Field(None, max_length=500)
    summary: str | None = None
    author_id: int | None = None
    main_category_id: int | None = None
    status: NewsStatus = NewsStatus.DRAFT
    published_at: datetime | None = None
    is_featured: bool = False
    canonical_slug: str | None = Field(None, max_length=SLUG_MAX_LENGTH)


class NewsCreate(NewsFields):
    blocks: list[BlockIn] = []
    images: list[ImageIn] = []
    tags: list[int] = []
    related_ids: list[RelatedRef] = []


class NewsUpdate(BaseModel):
    """
    Partial update. Omitted fields keep their stored value; for the four
    child collections, omitted or ``null`` means "leave untouched" while
    ``[]`` means "clear".
    """

    title: str | None = Field(None, min_length=1, max_length=300)
    subtitle: str | None = Field(None, max_length=500)
    summary: str | None = None
    author_id: int | None = None
    main_category_id: int | None = None
    status: NewsStatus | None = None
    published_at: datetime | None = None
    is_featured: bool | None = None
    canonical_slug: str | None = Field(None, max_length=SLUG_MAX_LENGTH)
    blocks: list[BlockIn] | None = None
    images: list[ImageIn] | None = None
    tags: list[int] | None = None
    related_ids: list[RelatedRef] | None = None


class NewsListItem(BaseModel):
    id: int
    title: str
    subtitle: str | None
    summary: str | None
    status: str
    published_at: datetime | None
    canonical_slug: str | None
    is_featured: bool
    created_at: datetime | None
    author_id: int | None
    main_category_id: int | None
    author_name: str | None = None
    category_name: str | None = None
    category_slug: str | None = None
    image_url: str | None = None


class NewsDetail(NewsListItem):
    updated_at: datetime | None = None
    author_email: str | None = None
    blocks: list[BlockResponse] = []
    images: list[ImageResponse] = []
    tags: list[TagResponse] = []
    related: list[RelatedResponse] = []


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Typed per router
    total: int
    page: int
    page_size: int
    pages: int
