from datetime import datetime, timedelta, timezone
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import jwt

from app.core.config import settings

password_hasher = PasswordHasher()

ALGORITHM = "HS256"
# Development fallback only; deployments set SECRET_KEY in the environment.
SECRET_KEY = settings.SECRET_KEY or "caresync-local-development-secret"


def create_access_token(subject: Any, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode({"exp": expire, "sub": str(subject)}, SECRET_KEY, algorithm=ALGORITHM)


def decode_subject(token: str) -> str | None:
    """Return the token subject; raises JWTError for bad or expired tokens."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    subject = payload.get("sub")
    return str(subject) if subject else None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return password_hasher.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def get_password_hash(password: str) -> str:
    return password_hasher.hash(password)
