from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models import user as models_user
from app.schemas import user as schemas_user

def get_user(db: Session, user_id: int) -> Optional[models_user.User]:
    return db.query(models_user.User).filter(models_user.User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[models_user.User]:
    if not email:
        return None
    return db.query(models_user.User).filter(
        func.lower(models_user.User.email) == email.strip().lower()
    ).first()

def create_user(db: Session, user: schemas_user.UserCreate) -> models_user.User:
    """Accounts are owned by the account system; this exists for seeding and tests."""
    db_user = models_user.User(
        email=user.email.lower(),
        name=user.name,
        avatar=user.avatar,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user
