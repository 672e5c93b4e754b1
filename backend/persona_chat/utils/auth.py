"""
Authentication helpers: bcrypt password hashes, signed JWT access tokens,
and the FastAPI dependencies that turn a bearer token into a user id.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..config import settings
from ..models import Token, TokenData, UserInDB
from ..storage import ChatStore

bearer_scheme = HTTPBearer()
# /api/chat reports a missing token itself, before any other check runs
optional_bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a JWT carrying ``data`` plus an ``exp`` claim.

    Args:
        data: Claims to encode; ``sub`` holds the user id
        expires_delta: Token lifetime (default: ``access_token_expire_minutes``)

    Returns:
        str: Encoded JWT
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def issue_token(user: UserInDB) -> Token:
    """Bearer token for a user who just signed in."""
    return Token(access_token=create_access_token({"sub": user.id, "username": user.username}))


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Check a token's signature and expiry.

    Returns:
        Optional[TokenData]: Claims if the token is valid and names a user, None otherwise
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if not claims.get("sub"):
        return None
    return TokenData(user_id=claims["sub"], username=claims.get("username"))


def _user_id_from(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is None:
        return None
    token_data = decode_access_token(credentials.credentials)
    return token_data.user_id if token_data else None


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> str:
    """
    Dependency for routes that need a signed-in user.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    user_id = _user_id_from(credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme)
) -> Optional[str]:
    """Dependency resolving the caller from a valid token; None if absent or invalid."""
    return _user_id_from(credentials)


async def authenticate_user(store: ChatStore, username: str, password: str) -> Optional[UserInDB]:
    """Look up a user by name and check the password. None on any mismatch."""
    user = await store.get_user_by_username(username)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user
