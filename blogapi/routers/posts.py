# blogapi/routers/posts.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List, Optional
import logging

from blogapi.core.config import settings
from blogapi.core.deps import get_current_user
from blogapi.core.errors import PermissionDeniedError
from blogapi.crud.blog import blog_crud
from blogapi.database.engine import get_db
from blogapi.models.user import User
from blogapi.schemas.blog import PostCreate, PostUpdate, PostFilters, PostWithCategories
from blogapi.schemas.common import ERROR_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
    responses=ERROR_RESPONSES,
)


def require_author(db: Session, post_id: int, current_user: User, action: str) -> None:
    """Only the post's author may change or remove it."""
    post = blog_crud.get_post_model(db, post_id)
    if post.author_id != current_user.id:
        logger.warning(f"User {current_user.id} tried to {action} post {post_id} owned by {post.author_id}")
        raise PermissionDeniedError(f"You can only {action} your own posts")


# ========================================
# POST ENDPOINTS
# ========================================

@router.get("", response_model=List[PostWithCategories])
def get_posts(
    search: Optional[str] = Query(None, description="Case-insensitive match on title"),
    category_id: Optional[int] = Query(None, gt=0),
    published: Optional[bool] = None,
    author_id: Optional[int] = Query(None, gt=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """
    Get posts with their categories, newest first.

    **Query Parameters**:
    - search: Substring of the title (case-insensitive)
    - category_id: Only posts linked to this category
    - published: Filter by published flag
    - author_id: Filter by author ID
    - limit: Maximum number of posts to return (1-100)
    - offset: Number of posts to skip

    Filters are combined with AND. Pagination counts posts, not
    post/category pairs. Offset pages can shift if posts are created
    between requests.
    """
    filters = PostFilters(
        search=search,
        category_id=category_id,
        published=published,
        author_id=author_id,
        limit=limit,
        offset=offset,
    )
    return blog_crud.get_posts(db, filters)


@router.get("/by-slug/{slug}", response_model=PostWithCategories)
def get_post_by_slug(slug: str, db: Session = Depends(get_db)):
    """Get a single post by slug."""
    return blog_crud.get_post_by_slug(db, slug)


@router.get("/{post_id}", response_model=PostWithCategories)
def get_post(post_id: int, db: Session = Depends(get_db)):
    """Get a single post by ID."""
    return blog_crud.get_post(db, post_id)


@router.post("", response_model=PostWithCategories, status_code=status.HTTP_201_CREATED)
def create_post(
    post_data: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a new post. The slug is generated from the title.

    **Permissions**: Any signed-in user; the caller becomes the author
    """
    return blog_crud.create_post(db, post_data, current_user.id)


@router.patch("/{post_id}", response_model=PostWithCategories)
def update_post(
    post_id: int,
    post_data: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update a post. Supplying `category_ids` replaces all of the post's categories.

    **Permissions**: Post author only
    """
    require_author(db, post_id, current_user, "edit")
    return blog_crud.update_post(db, post_id, post_data)


@router.delete("/{post_id}", response_model=PostWithCategories)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Delete a post and return it as it was.

    **Permissions**: Post author only
    """
    require_author(db, post_id, current_user, "delete")
    return blog_crud.delete_post(db, post_id)
