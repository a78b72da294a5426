import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from config import settings
from database import get_db, to_object_id
from exceptions import AuthenticationException, InvalidIdException

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

# auto_error=False so a missing header gets our own 401 envelope instead of a 403
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be identified")
        return False


def create_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.JWT_EXPIRES_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> str:
    """Return the user id carried by a token, or raise AuthenticationException."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationException("Token has expired")
    except JWTError:
        raise AuthenticationException("Invalid token")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationException("Invalid token")
    return user_id


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User fields safe to send to the client."""
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "theme_preference": user.get("theme_preference", "system"),
        "created_at": user.get("created_at"),
    }


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict[str, Any]:
    """Resolve the bearer token to a stored user document."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Not authorized, no token provided")
    user_id = decode_token(credentials.credentials)
    try:
        object_id = to_object_id(user_id, "user")
    except InvalidIdException:
        raise AuthenticationException("Invalid token")
    user = get_db()["user"].find_one({"_id": object_id})
    if not user:
        raise AuthenticationException("User no longer exists")
    return user


def current_user_id(user: Dict[str, Any] = Depends(get_current_user)) -> str:
    return str(user["_id"])
