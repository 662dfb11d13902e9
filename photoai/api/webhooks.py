"""fal.ai completion webhooks."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from .deps import get_workflow
from ..models.enums import WebhookKind
from ..models.schemas import FalWebhookPayload, WebhookAck
from ..utils.errors import ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# VERIFICATION
# ============================================================================

async def verify_webhook(request: Request, token: Optional[str] = Query(default=None)):
    """
    Reject webhooks that fail the configured trust checks.

    The request id in the body is trusted as the correlation key, so
    anything that reaches the handlers must come from the provider.
    """
    client_ip = request.client.host if request.client else None
    request.app.state.webhook_verifier.verify(token, client_ip)


router = APIRouter(dependencies=[Depends(verify_webhook)])


# ============================================================================
# WEBHOOK ENDPOINTS
# ============================================================================

@router.post("/train", response_model=WebhookAck)
async def training_webhook(payload: FalWebhookPayload, workflow=Depends(get_workflow)):
    """Training finished: store the LoRA path and a fresh thumbnail on the model."""
    logger.info(
        "Training webhook received",
        extra={"request_id": payload.request_id, "status": payload.status}
    )

    if payload.failed:
        outcome = workflow.record_failure(WebhookKind.TRAINING, payload.request_id, payload.error)
        return WebhookAck(outcome=outcome)

    tensor_path = payload.resolved_tensor_path()
    if not tensor_path:
        raise ValidationError("Missing tensor_path")

    outcome = await workflow.complete_training(payload.request_id, tensor_path)
    return WebhookAck(outcome=outcome)


@router.post("/image", response_model=WebhookAck)
async def image_webhook(payload: FalWebhookPayload, workflow=Depends(get_workflow)):
    """Generation finished: store the image URL."""
    logger.info(
        "Image webhook received",
        extra={"request_id": payload.request_id, "status": payload.status}
    )

    if payload.failed:
        outcome = workflow.record_failure(WebhookKind.IMAGE, payload.request_id, payload.error)
        return WebhookAck(outcome=outcome)

    image_url = payload.resolved_image_url()
    if not image_url:
        raise ValidationError("Missing image_url")

    outcome = await workflow.complete_image(payload.request_id, image_url)
    return WebhookAck(outcome=outcome)
