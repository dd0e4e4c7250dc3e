from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models
from .config import Settings
from .database import get_db
from .errors import ForbiddenError, UnauthorizedError

SECRET_KEY = Settings.JWT_SECRET_KEY
ALGORITHM = Settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = Settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
PASSWORD_HASH_ROUNDS = 100_000

# Salt and digest are stored together in one string; verify() compares
# digests in constant time.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha512"],
    deprecated="auto",
    pbkdf2_sha512__rounds=PASSWORD_HASH_ROUNDS,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognised or corrupt stored hash.
        return False


def create_access_token(user: models.User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(user.id),
        "role": user.role,
        "username": user.username,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a valid token, or None for any bad, tampered or expired one."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> models.User:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer" or not token:
        raise UnauthorizedError("Unauthorized")

    payload = decode_access_token(token.strip())
    if payload is None:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except ValueError:
        raise UnauthorizedError("Invalid or expired token")

    user = db.get(models.User, user_id)
    if not user:
        raise UnauthorizedError("User not found")
    return user


def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    if current_user.role != "admin":
        raise ForbiddenError()
    return current_user


def can_act(actor: models.User, target_user_id: int) -> bool:
    """Admins may act on anyone; everyone else only on themselves."""
    return actor.role == "admin" or actor.id == target_user_id


def ensure_can_act(actor: models.User, target_user_id: int) -> None:
    if not can_act(actor, target_user_id):
        raise ForbiddenError()
