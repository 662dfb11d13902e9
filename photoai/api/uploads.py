"""Presigned upload URL endpoint."""

from fastapi import APIRouter, Depends

from .deps import get_uploads
from ..models.schemas import PresignedUpload

router = APIRouter()


@router.get("/pre-signed-url", response_model=PresignedUpload)
async def pre_signed_url(uploads=Depends(get_uploads)):
    """Issue a 5-minute PUT URL for a training archive and the key it writes."""
    return uploads.presign_upload()
