"""
Catalog API endpoints - characters, models and the caller's favorite characters.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import settings
from ..core import get_all_characters, is_valid_character_slug
from ..core.characters import Character
from ..llm.catalog import available_models
from ..models import CharacterOut, ModelOut
from ..storage import ChatStore
from ..utils.auth import get_current_user_id
from .deps import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


def _character_out(character: Character, is_favorite: bool) -> CharacterOut:
    return CharacterOut(
        slug=character.slug,
        name=character.name,
        avatar_url=character.avatar_url,
        description=character.description,
        kickstart_messages=list(character.kickstart_messages),
        is_favorite=is_favorite,
    )


@router.get("/characters", response_model=List[CharacterOut])
async def list_characters(
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """All characters, flagged with the caller's favorites."""
    favorites = set(await store.list_favorites(user_id))
    return [_character_out(c, c.slug in favorites) for c in get_all_characters()]


@router.get("/models", response_model=List[ModelOut])
async def list_models():
    """Models a chat turn may request."""
    return [
        ModelOut(id=m.id, name=m.name, description=m.description, is_default=m.id == settings.default_model)
        for m in available_models(settings.allowed_models)
    ]


@router.get("/favorites", response_model=List[str])
async def list_favorites(
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """The caller's favorite character slugs."""
    return await store.list_favorites(user_id)


@router.put("/favorites/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def add_favorite(
    slug: str,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """Mark a character as favorite. Repeating it is harmless."""
    if not is_valid_character_slug(slug):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Character not found")

    if await store.add_favorite(user_id, slug):
        logger.info(f"Favorite added: {slug}", extra={"extra_fields": {"user_id": user_id, "slug": slug}})


@router.delete("/favorites/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    slug: str,
    user_id: str = Depends(get_current_user_id),
    store: ChatStore = Depends(get_store)
):
    """Unmark a favorite character."""
    await store.remove_favorite(user_id, slug)
