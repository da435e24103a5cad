# blogapi/crud/user.py
"""User CRUD operations and identity-to-author mapping."""
from sqlmodel import Session, select, func
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from datetime import datetime
import logging
import re

from blogapi.core.config import settings
from blogapi.core.errors import (
    ConflictError, DependencyMissingError, NotFoundError, PermissionDeniedError,
    translate_storage_error,
)
from blogapi.database.engine import transaction
from blogapi.models.user import User
from blogapi.models.blog import Post, Comment
from blogapi.schemas.auth import ActorIdentity
from blogapi.schemas.user import UserProfile, UserStats, UserUpdate

logger = logging.getLogger(__name__)

_USERNAME_UNSAFE = re.compile(r"[^a-z0-9_]+")


class UserCRUD:
    """CRUD operations for User model."""

    def get_user(self, db: Session, user_id: int) -> User:
        """Get user by ID."""
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", details={"id": user_id})
        return user

    def get_user_by_external_id(self, db: Session, external_id: str) -> Optional[User]:
        """Get the local user linked to an identity provider subject."""
        return db.exec(select(User).where(User.external_id == external_id)).first()

    def _provisioned_username(self, db: Session, actor: ActorIdentity) -> str:
        base = _USERNAME_UNSAFE.sub("", (actor.username or f"user_{actor.subject}").lower())[:40]
        if len(base) < 3:
            base = f"user_{base}"

        # Ensure uniqueness
        username = base
        counter = 1
        while db.exec(select(User.id).where(User.username == username)).first() is not None:
            username = f"{base}_{counter}"
            counter += 1
        return username

    def _provisioned_email(self, db: Session, actor: ActorIdentity) -> str:
        if actor.email:
            taken = db.exec(select(User.id).where(User.email == actor.email)).first()
            if taken is None:
                return actor.email
        return f"{actor.subject}@{settings.PROVISIONED_EMAIL_DOMAIN}"

    def resolve_author(self, db: Session, actor: ActorIdentity) -> User:
        """
        Map an authenticated actor to its local user row.

        Unknown subjects get a minimal user when AUTO_PROVISION_AUTHORS is on,
        so posts always have a valid author reference.

        Raises:
            DependencyMissingError: No linked user and provisioning is disabled
            PermissionDeniedError: The linked user is deactivated
        """
        user = self.get_user_by_external_id(db, actor.subject)
        if user:
            if not user.is_active:
                raise PermissionDeniedError("Account is deactivated")
            return user

        if not settings.AUTO_PROVISION_AUTHORS:
            raise DependencyMissingError(
                "No local user is linked to this account. Ask an administrator to create one."
            )

        user = User(
            username=self._provisioned_username(db, actor),
            email=self._provisioned_email(db, actor),
            external_id=actor.subject,
        )
        try:
            with transaction(db):
                db.add(user)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e,
                "provision author",
                conflict_message="A user for this account already exists",
            )

        db.refresh(user)
        logger.info(f"Provisioned local user {user.id} for subject {actor.subject}")
        return user

    def update_user(self, db: Session, user: User, user_data: UserUpdate) -> User:
        """
        Apply profile changes to ``user``.

        Raises:
            ConflictError: The new username or email belongs to another user
        """
        update_data = user_data.model_dump(exclude_unset=True)
        for field in ("username", "email"):
            if field in update_data and update_data[field] is None:
                del update_data[field]

        if 'username' in update_data and update_data['username'] != user.username:
            taken = db.exec(
                select(User.id).where(User.username == update_data['username'], User.id != user.id)
            ).first()
            if taken is not None:
                raise ConflictError("Username already exists", details={"username": update_data['username']})

        if 'email' in update_data and update_data['email'] != user.email:
            taken = db.exec(
                select(User.id).where(User.email == update_data['email'], User.id != user.id)
            ).first()
            if taken is not None:
                raise ConflictError("Email already exists", details={"email": update_data['email']})

        try:
            with transaction(db):
                for field, value in update_data.items():
                    setattr(user, field, value)
                user.updated_at = datetime.utcnow()
                db.add(user)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e, "update user", conflict_message="Username or email already exists"
            )

        db.refresh(user)
        logger.info(f"Updated user {user.id}")
        return user

    def deactivate_user(self, db: Session, user: User) -> User:
        """Soft delete: the account stays, but can no longer act as an author."""
        try:
            with transaction(db):
                user.is_active = False
                user.updated_at = datetime.utcnow()
                db.add(user)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "deactivate user")

        db.refresh(user)
        logger.info(f"Deactivated user {user.id}")
        return user

    def get_user_profile(self, db: Session, user_id: int) -> UserProfile:
        """Get public profile with post and comment statistics."""
        user = self.get_user(db, user_id)

        total_posts = db.exec(
            select(func.count(Post.id)).where(Post.author_id == user_id)
        ).one()
        published_posts = db.exec(
            select(func.count(Post.id)).where(Post.author_id == user_id, Post.published == True)  # noqa: E712
        ).one()
        total_comments = db.exec(
            select(func.count(Comment.id)).where(Comment.author_id == user_id, Comment.is_approved == True)  # noqa: E712
        ).one()

        profile = UserProfile.model_validate(user)
        profile.stats = UserStats(
            total_posts=total_posts,
            published_posts=published_posts,
            total_comments=total_comments,
        )
        return profile


user_crud = UserCRUD()
