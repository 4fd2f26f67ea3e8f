"""
Bearer token helpers.

Tokens are issued by the identity collaborator; this service only needs to
verify them and read the subject (the user id). create_access_token is kept
for service-to-service calls and tests.
"""

from datetime import timedelta
from typing import Any, Optional

from jose import JWTError, jwt

from eventbooking.core.config import get_settings
from eventbooking.db.base import utcnow

settings = get_settings()


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {**data, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[int]:
    """Return the user id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
