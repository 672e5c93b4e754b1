"""
Account endpoints: registration, login, and the caller's profile.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import Token, User, UserCreate, UserInDB, UserLogin, UserUpdate
from ..storage import ChatStore
from ..utils.auth import authenticate_user, get_current_user_id, get_password_hash, issue_token
from .deps import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _public(user: UserInDB) -> User:
    return User(**user.model_dump(exclude={"hashed_password"}))


def _username_taken() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already registered")


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, store: ChatStore = Depends(get_store)):
    """
    Create an account.

    Raises:
        HTTPException: 400 if the username is taken
    """
    if await store.get_user_by_username(user_data.username):
        raise _username_taken()

    try:
        user = await store.create_user(
            username=user_data.username,
            hashed_password=get_password_hash(user_data.password),
            email=user_data.email,
            display_name=user_data.display_name,
        )
    except ValueError:
        # Concurrent registration won the unique constraint
        raise _username_taken()

    logger.info(f"User registered: {user.username}", extra={"extra_fields": {"user_id": user.id}})
    return _public(user)


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, store: ChatStore = Depends(get_store)):
    """
    Exchange username and password for a bearer token.

    Raises:
        HTTPException: 401 on a wrong username or password
    """
    user = await authenticate_user(store, credentials.username, credentials.password)
    if user is None:
        logger.info(f"Failed login for {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return issue_token(user)


@router.get("/me", response_model=User)
async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    user = await store.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _public(user)


@router.put("/profile", response_model=User)
async def update_profile(
    profile_update: UserUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """Change the display name and/or password of the caller."""
    hashed_password = (
        get_password_hash(profile_update.password) if profile_update.password is not None else None
    )
    user = await store.update_user(
        user_id,
        display_name=profile_update.display_name,
        hashed_password=hashed_password,
    )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _public(user)
