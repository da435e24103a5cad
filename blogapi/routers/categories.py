# blogapi/routers/categories.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List, Optional

from blogapi.core.deps import get_current_user
from blogapi.crud.blog import blog_crud
from blogapi.database.engine import get_db
from blogapi.models.user import User
from blogapi.schemas.blog import Category, CategoryCreate, CategoryUpdate, CategoryTreeNode
from blogapi.schemas.common import ERROR_RESPONSES

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    responses=ERROR_RESPONSES,
)


@router.get("", response_model=List[Category])
def get_categories(
    search: Optional[str] = Query(None, description="Case-insensitive match on name"),
    parent_id: Optional[int] = Query(None, gt=0),
    active_only: bool = False,
    db: Session = Depends(get_db)
):
    """
    Get list of all categories.

    **Permissions**: Public (no authentication required)
    """
    return blog_crud.get_categories(db, search=search, parent_id=parent_id, active_only=active_only)


@router.get("/tree", response_model=List[CategoryTreeNode])
def get_category_tree(active_only: bool = False, db: Session = Depends(get_db)):
    """Get categories nested under their parents."""
    return blog_crud.get_category_tree(db, active_only=active_only)


@router.get("/by-slug/{slug}", response_model=Category)
def get_category_by_slug(slug: str, db: Session = Depends(get_db)):
    """Get a single category by slug."""
    return blog_crud.get_category_by_slug(db, slug)


@router.get("/{category_id}", response_model=Category)
def get_category(category_id: int, db: Session = Depends(get_db)):
    """Get a single category by ID."""
    return blog_crud.get_category(db, category_id)


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a new category. The slug is generated from the name.

    **Permissions**: Any signed-in user
    """
    return blog_crud.create_category(db, category_data)


@router.patch("/{category_id}", response_model=Category)
def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update a category. Renaming regenerates the slug.

    **Permissions**: Any signed-in user
    """
    return blog_crud.update_category(db, category_id, category_data)


@router.delete("/{category_id}", response_model=Category)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Delete a category and return it as it was.

    **Permissions**: Any signed-in user
    **Note**: Posts are kept; only their links to this category are removed
    """
    return blog_crud.delete_category(db, category_id)
