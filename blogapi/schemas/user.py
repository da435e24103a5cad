# blogapi/schemas/user.py
"""User schemas for API responses."""
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional
from datetime import datetime


class UserStats(BaseModel):
    total_posts: int = 0
    published_posts: int = 0
    total_comments: int = 0


class UserPublic(BaseModel):
    """User information safe for public exposure."""
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserProfile(UserPublic):
    stats: UserStats = UserStats()


class CurrentUser(UserPublic):
    """The caller's own account, including private fields."""
    email: str
    external_id: Optional[str] = None


class UserUpdate(BaseModel):
    """Self-service profile changes; omitted fields stay as they are."""
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = Field(None, max_length=500)

    @model_validator(mode='after')
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError('At least one field must be provided for update')
        return self
