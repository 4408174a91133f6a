"""Genre and tag endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends
from typing import Callable
from pydantic import Field

from catalog import CatalogManager, CatalogError
from ..dependencies import get_genre_manager, get_tag_manager
from ..models import APIModel

class CatalogEntryCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=100)

def build_router(prefix: str, tag: str, provider: Callable[[], CatalogManager]) -> APIRouter:
    """Build the list/get/create routes for one catalog table."""
    router = APIRouter(prefix=prefix, tags=[tag])
    
    @router.get("/")
    async def list_entries(manager: CatalogManager = Depends(provider)):
        return await manager.list_all()
    
    @router.get("/{entry_id}")
    async def get_entry(entry_id: int, manager: CatalogManager = Depends(provider)):
        try:
            return await manager.get(entry_id)
        except LookupError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(e)
            )
    
    @router.post("/", status_code=status.HTTP_201_CREATED)
    async def create_entry(entry: CatalogEntryCreate, manager: CatalogManager = Depends(provider)):
        try:
            return await manager.create(entry.name)
        except CatalogError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
    
    return router

genres_router = build_router("/genres", "Genres", get_genre_manager)
tags_router = build_router("/tags", "Tags", get_tag_manager)

__all__ = ['genres_router', 'tags_router', 'build_router']
