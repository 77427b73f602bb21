import logging

from jose import JWTError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError
from app.core.security import decode_access_token
from app.models.user import User
from app.schemas.token import TokenData
from app.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)


def get_user_from_token(db: Session, token: str) -> User:
    """Resolve a bearer token to an active user or raise AuthenticationError."""
    try:
        payload = decode_access_token(token)
        email: str = payload.get("sub")
        if email is None:
            raise AuthenticationError("Could not validate credentials")
        token_data = TokenData(email=email)
    except JWTError:
        logger.info("[Auth] Rejected bearer token that failed verification")
        raise AuthenticationError("Could not validate credentials")

    user = get_user_by_email(db, email=token_data.email)
    if user is None or not user.is_active:
        logger.info(f"[Auth] Token subject {token_data.email} has no active account")
        raise AuthenticationError("Could not validate credentials")
    return user
