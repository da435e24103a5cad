from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from typing import Optional

from blogapi.core.auth import verify_identity_token
from blogapi.crud.user import user_crud
from blogapi.database.engine import get_db
from blogapi.models.user import User
from blogapi.schemas.auth import ActorIdentity

security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> ActorIdentity:
    """Require a valid identity token and return the actor it names."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be signed in to perform this action",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor = verify_identity_token(credentials.credentials)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


def get_current_user(
    actor: ActorIdentity = Depends(get_current_actor),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated actor to its local user, provisioning one if allowed."""
    return user_crud.resolve_author(db, actor)


__all__ = ["get_db", "get_current_actor", "get_current_user"]
