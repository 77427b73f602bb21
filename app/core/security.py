from datetime import timedelta
from typing import Optional

from jose import jwt

from app.core.config import settings
from app.core.database import utc_now

ALGORITHM = settings.ALGORITHM


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token whose ``sub`` claim is the user's email."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": subject, "exp": utc_now() + expires_delta}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
