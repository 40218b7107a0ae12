# lendfi/services/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from lendfi.config import settings
from lendfi.database import get_db
from lendfi.exceptions import ForbiddenError, UnauthorizedError
from lendfi.models.user_models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: timedelta = None):
    jwt_config = settings.JWT_CONFIG
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=jwt_config["access_token_expire_minutes"])

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, jwt_config["secret_key"], algorithm=jwt_config["algorithm"])


def create_user_token(user: User) -> str:
    return create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
    })


def verify_token(token: str):
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# auto_error=False so a missing header is reported as 401, not 403
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access token required")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedError("Invalid or expired token")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.warning(f"Token for unknown user id={user_id}")
        raise UnauthorizedError("Invalid or expired token")

    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


def require_kyc(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_kyc_verified:
        raise ForbiddenError("KYC verification required")
    return current_user
