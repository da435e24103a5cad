# blogapi/models/blog.py
from sqlmodel import SQLModel, Field, Relationship, Column, Text
from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from typing import Optional, List
from datetime import datetime

from blogapi.models.user import User

_CHILD_CASCADE = {"cascade": "all, delete-orphan", "passive_deletes": True}


class Post(SQLModel, table=True):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("length(title) >= 5", name="title_min_length"),
        CheckConstraint("length(slug) >= 3", name="slug_min_length"),
        CheckConstraint("view_count >= 0", name="view_count_non_negative"),
        CheckConstraint("reading_time_minutes > 0", name="reading_time_positive"),
        Index("posts_published_created_idx", "published", "created_at"),
        Index("posts_author_published_idx", "author_id", "published"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    content: Optional[str] = Field(default=None, sa_column=Column(Text))
    excerpt: Optional[str] = Field(default=None, max_length=500)
    slug: str = Field(max_length=250, unique=True, index=True)
    published: bool = Field(default=False, index=True)
    featured: bool = Field(default=False, index=True)
    view_count: int = Field(default=0)
    reading_time_minutes: Optional[int] = Field(default=1)
    seo_title: Optional[str] = Field(default=None, max_length=60)
    seo_description: Optional[str] = Field(default=None, max_length=160)
    published_at: Optional[datetime] = Field(default=None, index=True)
    author_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    author: User = Relationship(back_populates="posts")
    category_links: List["PostCategory"] = Relationship(
        back_populates="post", sa_relationship_kwargs=_CHILD_CASCADE
    )
    tag_links: List["PostTag"] = Relationship(
        back_populates="post", sa_relationship_kwargs=_CHILD_CASCADE
    )
    comments: List["Comment"] = Relationship(
        back_populates="post", sa_relationship_kwargs=_CHILD_CASCADE
    )


class Category(SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = (
        CheckConstraint("length(name) >= 2", name="category_name_min_length"),
        CheckConstraint("length(slug) >= 2", name="category_slug_min_length"),
        CheckConstraint("post_count >= 0", name="post_count_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True, index=True)
    slug: str = Field(max_length=120, unique=True, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    # Hierarchy; acyclicity is checked by the CRUD layer on write
    parent_id: Optional[int] = Field(
        default=None, foreign_key="categories.id", ondelete="SET NULL", index=True
    )
    color: Optional[str] = Field(default=None, max_length=7)  # Hex color code
    icon: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = Field(default=True, index=True)
    sort_order: int = Field(default=0, index=True)
    post_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    post_links: List["PostCategory"] = Relationship(
        back_populates="category", sa_relationship_kwargs=_CHILD_CASCADE
    )


class PostCategory(SQLModel, table=True):
    __tablename__ = "post_categories"
    __table_args__ = (
        UniqueConstraint("post_id", "category_id", name="post_categories_unique_idx"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    category_id: int = Field(foreign_key="categories.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    post: Post = Relationship(back_populates="category_links")
    category: Category = Relationship(back_populates="post_links")


class Tag(SQLModel, table=True):
    __tablename__ = "tags"
    __table_args__ = (
        CheckConstraint("length(name) >= 2", name="tag_name_min_length"),
        CheckConstraint("usage_count >= 0", name="tag_usage_count_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=50, unique=True, index=True)
    slug: str = Field(max_length=60, unique=True, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    color: Optional[str] = Field(default=None, max_length=7)
    usage_count: int = Field(default=0, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    post_links: List["PostTag"] = Relationship(
        back_populates="tag", sa_relationship_kwargs=_CHILD_CASCADE
    )


class PostTag(SQLModel, table=True):
    __tablename__ = "post_tags"
    __table_args__ = (
        UniqueConstraint("post_id", "tag_id", name="post_tags_unique_idx"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    tag_id: int = Field(foreign_key="tags.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    post: Post = Relationship(back_populates="tag_links")
    tag: Tag = Relationship(back_populates="post_links")


class Comment(SQLModel, table=True):
    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint("length(content) >= 1", name="comment_content_min_length"),
        CheckConstraint("like_count >= 0", name="comment_like_count_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    author_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    # Threaded replies
    parent_id: Optional[int] = Field(
        default=None, foreign_key="comments.id", ondelete="CASCADE", index=True
    )
    content: str = Field(sa_column=Column(Text, nullable=False))
    is_approved: bool = Field(default=False, index=True)
    is_deleted: bool = Field(default=False)
    like_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    post: Post = Relationship(back_populates="comments")
    author: User = Relationship(back_populates="comments")
