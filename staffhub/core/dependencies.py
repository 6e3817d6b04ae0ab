from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from staffhub.core.auth import get_user_from_token
from staffhub.core.config import settings
from staffhub.core.database import SessionLocal
from staffhub.models.enums import UserRole
from staffhub.models.user import User
from staffhub.services.connection_manager import ConnectionManager, manager

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_connection_manager() -> ConnectionManager:
    return manager


async def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)
) -> User:
    return get_user_from_token(db, token)


def require_roles(*roles: UserRole):
    """
    Dependency factory that only lets users holding one of ``roles`` through.
    """
    allowed = set(roles)

    async def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: {current_user.role.value} cannot access this route",
            )
        return current_user
    return role_checker
