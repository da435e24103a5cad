from pydantic import BaseModel
from typing import Optional


class ActorIdentity(BaseModel):
    """Authenticated caller as asserted by the identity provider."""
    subject: str
    session_id: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
