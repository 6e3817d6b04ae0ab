import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from staffhub.core.database import SessionLocal
from staffhub.models import user as models_user
from staffhub.models.enums import PresenceStatus, UserRole
from staffhub.schemas import user as schemas_user

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[models_user.User]:
    return db.query(models_user.User).filter(models_user.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models_user.User]:
    return db.query(models_user.User).filter(models_user.User.email == email).first()


def get_users_by_ids(db: Session, user_ids: Iterable[int]) -> List[models_user.User]:
    user_ids = list(set(user_ids))
    if not user_ids:
        return []
    return db.query(models_user.User).filter(models_user.User.id.in_(user_ids)).all()


def get_active_user_ids(db: Session, exclude_ids: Iterable[int] = ()) -> List[int]:
    query = db.query(models_user.User.id).filter(models_user.User.is_active.is_(True))
    exclude_ids = list(set(exclude_ids))
    if exclude_ids:
        query = query.filter(models_user.User.id.notin_(exclude_ids))
    return [user_id for (user_id,) in query.order_by(models_user.User.id).all()]


def create_user(db: Session, user: schemas_user.UserCreate) -> models_user.User:
    db_user = models_user.User(
        email=user.email,
        name=user.name,
        role=UserRole(user.role),
        employee_code=user.employee_code,
        reporting_to_id=user.reporting_to_id,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_user_presence(db: Session, user_id: int, presence_status: str) -> Optional[models_user.User]:
    db_user = get_user(db, user_id)
    if db_user:
        db_user.presence_status = presence_status
        db.commit()
    return db_user


def store_presence(user_id: int, presence: PresenceStatus) -> None:
    """Persist presence in its own session. Failures are logged; presence is advisory."""
    db = SessionLocal()
    try:
        update_user_presence(db, user_id, presence.value)
    except SQLAlchemyError as e:
        logger.warning(f"Could not store presence for user {user_id}: {e}")
        db.rollback()
    finally:
        db.close()
