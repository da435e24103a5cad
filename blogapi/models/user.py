from sqlmodel import SQLModel, Field, Relationship, Column, Text
from sqlalchemy import CheckConstraint
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from blogapi.models.blog import Post, Comment


class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("length(username) >= 3", name="username_min_length"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True)
    email: str = Field(max_length=320, unique=True, index=True)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, sa_column=Column(Text))
    avatar_url: Optional[str] = Field(default=None, max_length=500)

    # Subject claim of the identity provider account mapped to this user
    external_id: Optional[str] = Field(default=None, max_length=255, unique=True, index=True)

    # Account status
    is_active: bool = Field(default=True, index=True)
    email_verified: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    posts: List["Post"] = Relationship(
        back_populates="author",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True}
    )
    comments: List["Comment"] = Relationship(
        back_populates="author",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True}
    )
