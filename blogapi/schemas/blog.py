# blogapi/schemas/blog.py
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _not_blank(v: Optional[str], label: str) -> Optional[str]:
    if v is not None and len(v.strip()) == 0:
        raise ValueError(f'{label} cannot be empty')
    return v


def _dedupe_ids(v: Optional[List[int]]) -> Optional[List[int]]:
    # Keep first occurrence so insertion order follows the request
    if v is None:
        return v
    return list(dict.fromkeys(v))


# Category Schemas
class CategoryBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = Field(None, gt=0)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=50)
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase):
    @field_validator('name')
    def validate_name(cls, v):
        return _not_blank(v, 'Category name').strip()


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = Field(None, gt=0)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator('name')
    def validate_name(cls, v):
        v = _not_blank(v, 'Category name')
        return v.strip() if v is not None else v


class Category(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool
    sort_order: int
    post_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryTreeNode(Category):
    """Category with its nested sub-categories"""
    children: List["CategoryTreeNode"] = []


# Tag Schemas
class TagBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TagCreate(TagBase):
    @field_validator('name')
    def validate_name(cls, v):
        return _not_blank(v, 'Tag name').strip()


class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)

    @field_validator('name')
    def validate_name(cls, v):
        v = _not_blank(v, 'Tag name')
        return v.strip() if v is not None else v

    @model_validator(mode='after')
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError('At least one field must be provided for update')
        return self


class Tag(TagBase):
    id: int
    slug: str
    usage_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TagWithPostCount(Tag):
    """Tag plus the number of published posts using it, when requested"""
    post_count: Optional[int] = None


class TagSuggestion(BaseModel):
    id: int
    name: str
    slug: str
    color: Optional[str] = None

    class Config:
        from_attributes = True


class TagBulkDelete(BaseModel):
    ids: List[int] = Field(..., min_length=1, max_length=50)

    @field_validator('ids')
    def validate_ids(cls, v):
        if any(i <= 0 for i in v):
            raise ValueError('Identifiers must be positive integers')
        return _dedupe_ids(v)


class BulkDeleteResult(BaseModel):
    deleted_count: int
    message: str


# Post Schemas
class PostBase(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, max_length=500)
    published: bool = False
    featured: bool = False


class PostCreate(PostBase):
    category_ids: List[int] = []
    tag_ids: List[int] = []

    @field_validator('title')
    def validate_title(cls, v):
        return _not_blank(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _not_blank(v, 'Content')

    @field_validator('category_ids', 'tag_ids')
    def validate_ids(cls, v):
        if any(i <= 0 for i in v):
            raise ValueError('Identifiers must be positive integers')
        return _dedupe_ids(v)


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, max_length=500)
    published: Optional[bool] = None
    featured: Optional[bool] = None
    category_ids: Optional[List[int]] = None
    tag_ids: Optional[List[int]] = None

    @field_validator('title')
    def validate_title(cls, v):
        return _not_blank(v, 'Title')

    @field_validator('content')
    def validate_content(cls, v):
        return _not_blank(v, 'Content')

    @field_validator('category_ids', 'tag_ids')
    def validate_ids(cls, v):
        if v is not None and any(i <= 0 for i in v):
            raise ValueError('Identifiers must be positive integers')
        return _dedupe_ids(v)


class PostFilters(BaseModel):
    """Optional filters for listing posts; absent values add no predicate"""
    search: Optional[str] = None
    category_id: Optional[int] = Field(None, gt=0)
    published: Optional[bool] = None
    author_id: Optional[int] = Field(None, gt=0)
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)


class PostWithCategories(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    excerpt: Optional[str] = None
    slug: str
    published: bool
    featured: bool
    view_count: int = 0
    reading_time_minutes: Optional[int] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    published_at: Optional[datetime] = None
    author_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    categories: List[Category] = []
    tags: List[Tag] = []

    class Config:
        from_attributes = True
