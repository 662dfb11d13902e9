"""Read endpoints for the caller's models and images."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from .deps import get_current_user, get_storage
from ..models.schemas import ImageListResponse, ModelListResponse
from ..utils.errors import ValidationError

router = APIRouter()


def _flatten_ids(values: List[str]) -> Optional[List[str]]:
    """
    Accept ``ids=a&ids=b`` as well as ``ids=a,b``; keep order, drop repeats.

    None when no ids were sent, meaning no id filter. Ids that are not
    UUIDs can never match a row and are rejected.
    """
    ids: List[str] = []
    for value in values:
        for item in value.split(","):
            item = item.strip()
            if not item:
                continue
            try:
                item = str(UUID(item))
            except ValueError:
                raise ValidationError("Input incorrect")
            if item not in ids:
                ids.append(item)
    return ids or None


@router.get("/image/bulk", response_model=ImageListResponse)
async def list_images(
    ids: List[str] = Query(default=[]),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user),
    storage=Depends(get_storage),
):
    """Page of the caller's images, newest first, optionally restricted to ``ids``."""
    images = await storage.list_output_images(user_id, _flatten_ids(ids), offset, limit)
    return ImageListResponse(images=images)


@router.get("/models", response_model=ModelListResponse)
async def list_models(
    user_id: str = Depends(get_current_user),
    storage=Depends(get_storage),
):
    """The caller's own models plus every open model."""
    return ModelListResponse(models=await storage.list_visible_models(user_id))
