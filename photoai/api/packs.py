"""Prompt pack endpoints."""

from fastapi import APIRouter, Depends

from .deps import get_current_user, get_storage, get_workflow
from ..models.schemas import (
    GenerateImagesFromPackRequest,
    PackGenerateResponse,
    PackListResponse,
)

router = APIRouter()


@router.post("/generate", response_model=PackGenerateResponse)
async def generate_from_pack(
    body: GenerateImagesFromPackRequest,
    user_id: str = Depends(get_current_user),
    workflow=Depends(get_workflow),
):
    """
    Queue one generation per prompt in the pack.

    All or nothing: if any submission fails the request fails and no
    image rows are left behind. Ids come back in prompt order.
    """
    images = await workflow.submit_pack(user_id, body)
    return PackGenerateResponse(images=[image.id for image in images])


@router.get("/bulk", response_model=PackListResponse)
async def list_packs(storage=Depends(get_storage)):
    return PackListResponse(packs=await storage.list_packs())
