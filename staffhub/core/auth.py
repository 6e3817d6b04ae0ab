from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from staffhub.core.security import decode_access_token
from staffhub.models.user import User
from staffhub.schemas.token import TokenData
from staffhub.services.user_service import get_user_by_email


def get_user_from_token(db: Session, token: str) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
        token_data = TokenData(email=email)
    except JWTError:
        raise credentials_exception
    user = get_user_by_email(db, email=token_data.email)
    if user is None or not user.is_active:
        raise credentials_exception
    return user
