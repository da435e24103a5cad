# blogapi/routers/tags.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List, Literal, Optional

from blogapi.core.deps import get_current_user
from blogapi.crud.blog import blog_crud
from blogapi.database.engine import get_db
from blogapi.models.user import User
from blogapi.schemas.blog import (
    Tag, TagCreate, TagUpdate, TagWithPostCount, TagSuggestion,
    TagBulkDelete, BulkDeleteResult,
)
from blogapi.schemas.common import ERROR_RESPONSES

router = APIRouter(
    prefix="/tags",
    tags=["tags"],
    responses=ERROR_RESPONSES,
)


@router.get("", response_model=List[Tag])
def get_tags(
    search: Optional[str] = Query(None, description="Case-insensitive match on name"),
    sort_by: Literal["name", "usage_count", "created_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Get list of tags.

    **Query Parameters**:
    - search: Substring of the name (case-insensitive)
    - sort_by: name, usage_count or created_at
    - sort_order: asc or desc
    """
    return blog_crud.get_tags(
        db, search=search, sort_by=sort_by, sort_order=sort_order, skip=skip, limit=limit
    )


@router.get("/popular", response_model=List[Tag])
def get_popular_tags(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Get the most used tags."""
    return blog_crud.get_popular_tags(db, limit=limit)


@router.get("/suggestions", response_model=List[TagSuggestion])
def get_tag_suggestions(
    q: str = Query(..., min_length=1, max_length=50, description="Name prefix"),
    limit: int = Query(10, ge=1, le=20),
    db: Session = Depends(get_db)
):
    """Autocomplete tags by name prefix, most used first."""
    return blog_crud.get_tag_suggestions(db, q, limit=limit)


@router.get("/by-slug/{slug}", response_model=TagWithPostCount)
def get_tag_by_slug(
    slug: str,
    include_post_count: bool = False,
    db: Session = Depends(get_db)
):
    """
    Get a single tag by slug.

    With `include_post_count=true` the response also carries the number of
    published posts using the tag.
    """
    return blog_crud.get_tag_by_slug(db, slug, include_post_count=include_post_count)


@router.get("/{tag_id}", response_model=Tag)
def get_tag(tag_id: int, db: Session = Depends(get_db)):
    """Get a single tag by ID."""
    return blog_crud.get_tag(db, tag_id)


@router.post("", response_model=Tag, status_code=status.HTTP_201_CREATED)
def create_tag(
    tag_data: TagCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new tag."""
    return blog_crud.create_tag(db, tag_data)


@router.post("/bulk-delete", response_model=BulkDeleteResult)
def bulk_delete_tags(
    payload: TagBulkDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Delete up to 50 tags at once.

    **Note**: Refused with 412 while any of the tags is used by a post
    """
    deleted_count = blog_crud.bulk_delete_tags(db, payload.ids)
    return BulkDeleteResult(
        deleted_count=deleted_count,
        message=f"Successfully deleted {deleted_count} tags",
    )


@router.patch("/{tag_id}", response_model=Tag)
def update_tag(
    tag_id: int,
    tag_data: TagUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a tag. Renaming regenerates the slug."""
    return blog_crud.update_tag(db, tag_id, tag_data)


@router.delete("/{tag_id}", response_model=Tag)
def delete_tag(
    tag_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Delete a tag.

    **Note**: This will remove the tag from all associated posts
    """
    return blog_crud.delete_tag(db, tag_id)
