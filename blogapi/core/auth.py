from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import logging

from blogapi.core.config import settings
from blogapi.schemas.auth import ActorIdentity

logger = logging.getLogger(__name__)


def create_identity_token(
    subject: str,
    session_id: Optional[str] = None,
    email: Optional[str] = None,
    username: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Issue an identity token in the shape the identity provider signs them.

    Used by local tooling and tests; in deployment the provider issues the
    tokens and this service only verifies them.

    Args:
        subject: Provider user ID ('sub' claim)
        session_id: Provider session ID ('sid' claim)
        email: Optional email claim
        username: Optional username claim
        expires_delta: Custom expiration time
        extra_claims: Additional claims merged into the payload

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.IDENTITY_TOKEN_EXPIRE_MINUTES))

    to_encode: Dict[str, Any] = {
        "sub": str(subject),
        "iat": now,
        "exp": expire,
    }
    if session_id:
        to_encode["sid"] = session_id
    if email:
        to_encode["email"] = email
    if username:
        to_encode["username"] = username
    if settings.IDENTITY_TOKEN_ISSUER:
        to_encode["iss"] = settings.IDENTITY_TOKEN_ISSUER
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.IDENTITY_TOKEN_SECRET, algorithm=settings.IDENTITY_TOKEN_ALGORITHM)


def verify_identity_token(token: str) -> Optional[ActorIdentity]:
    """
    Verify an identity token and extract the actor it authenticates.

    Returns:
        ActorIdentity if the signature, expiry and issuer check out, None otherwise
    """
    options = {"verify_iss": bool(settings.IDENTITY_TOKEN_ISSUER)}
    try:
        payload = jwt.decode(
            token,
            settings.IDENTITY_TOKEN_SECRET,
            algorithms=[settings.IDENTITY_TOKEN_ALGORITHM],
            issuer=settings.IDENTITY_TOKEN_ISSUER,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Rejected identity token: {e}")
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    return ActorIdentity(
        subject=str(subject),
        session_id=payload.get("sid"),
        email=payload.get("email"),
        username=payload.get("username"),
    )
