# blogapi/routers/users.py
"""User profile endpoints."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from blogapi.core.deps import get_current_user
from blogapi.crud.user import user_crud
from blogapi.database.engine import get_db
from blogapi.models.user import User
from blogapi.schemas.common import ERROR_RESPONSES
from blogapi.schemas.user import CurrentUser, UserProfile, UserUpdate

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses=ERROR_RESPONSES,
)


@router.get("/me", response_model=CurrentUser)
def get_current_user_profile(current_user: User = Depends(get_current_user)):
    """Get the local account of the signed-in caller."""
    return current_user


@router.patch("/me", response_model=CurrentUser)
def update_current_user(
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update the caller's own profile.

    **Permissions**: Self only
    **Errors**: 409 if the new username or email is taken
    """
    return user_crud.update_user(db, current_user, user_data)


@router.post("/me/deactivate", response_model=CurrentUser)
def deactivate_current_user(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Deactivate the caller's own account (soft delete).

    **Permissions**: Self only
    **Note**: Posts are kept; further writes with this account are refused with 403
    """
    return user_crud.deactivate_user(db, current_user)


@router.get("/{user_id}", response_model=UserProfile)
def get_user_profile(user_id: int, db: Session = Depends(get_db)):
    """Get a user's public profile with post and comment statistics."""
    return user_crud.get_user_profile(db, user_id)
