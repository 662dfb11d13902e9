"""Training and single-image generation endpoints."""

from fastapi import APIRouter, Depends

from .deps import get_current_user, get_workflow
from ..models.schemas import (
    GenerateImageRequest,
    GenerateImageResponse,
    TrainModelRequest,
    TrainModelResponse,
)

router = APIRouter()


@router.post("/training", response_model=TrainModelResponse)
async def train_model(
    body: TrainModelRequest,
    user_id: str = Depends(get_current_user),
    workflow=Depends(get_workflow),
):
    """Queue LoRA training on an uploaded archive; the model starts Pending."""
    model = await workflow.submit_training(user_id, body)
    return TrainModelResponse(model_id=model.id)


@router.post("/generate", response_model=GenerateImageResponse)
async def generate_image(
    body: GenerateImageRequest,
    user_id: str = Depends(get_current_user),
    workflow=Depends(get_workflow),
):
    image = await workflow.submit_generation(user_id, body)
    return GenerateImageResponse(image_id=image.id)
