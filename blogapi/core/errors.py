"""
Error taxonomy for the blog API.

Every failure the CRUD layer can report is one of the classes below. Each
carries a stable machine-readable ``code`` and the HTTP status the API
answers with; the handlers in ``blogapi.core.error_handlers`` turn them into
``ErrorResponse`` bodies.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from blogapi.core.config import settings

logger = logging.getLogger(__name__)


class BlogError(Exception):
    """Base class for domain and infrastructure errors."""

    code: str = "ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFoundError(BlogError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class ConflictError(BlogError):
    code = "CONFLICT"
    http_status = status.HTTP_409_CONFLICT


class DependencyMissingError(BlogError):
    code = "DEPENDENCY_MISSING"
    http_status = status.HTTP_400_BAD_REQUEST


class BlogValidationError(BlogError):
    code = "VALIDATION_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(BlogError):
    code = "FORBIDDEN"
    http_status = status.HTTP_403_FORBIDDEN


class PreconditionFailedError(BlogError):
    """The target exists but its current state forbids the operation."""
    code = "PRECONDITION_FAILED"
    http_status = status.HTTP_412_PRECONDITION_FAILED


class InfrastructureError(BlogError):
    code = "INTERNAL_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


def _is_unique_violation(exc: IntegrityError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == "23505"
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate" in text


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == "23503"
    return "foreign key" in str(exc.orig).lower()


def translate_storage_error(
    exc: SQLAlchemyError,
    action: str,
    conflict_message: Optional[str] = None,
    dependency_message: Optional[str] = None,
) -> BlogError:
    """
    Map a storage exception onto the error taxonomy.

    Args:
        exc: The exception raised by SQLAlchemy
        action: Short description used in the generic message, e.g. "create post"
        conflict_message: Message for unique constraint violations
        dependency_message: Message for foreign key violations

    Returns:
        The BlogError to raise in place of ``exc``
    """
    if isinstance(exc, IntegrityError):
        if _is_unique_violation(exc):
            return ConflictError(conflict_message or f"Failed to {action}: record already exists")
        if _is_foreign_key_violation(exc):
            return DependencyMissingError(
                dependency_message or f"Failed to {action}: related record not found"
            )

    logger.error(f"Storage failure during {action}: {exc}", exc_info=exc)
    message = f"Failed to {action}"
    if not settings.is_production:
        message = f"{message}: {exc}"
    return InfrastructureError(message)
