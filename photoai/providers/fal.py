"""fal.ai client for LoRA training and image generation."""

import httpx
from typing import Any, Dict, Optional

from .base import BaseProvider
from ..models.enums import WebhookKind
from ..models.schemas import SubmissionReceipt
from ..utils.config import ProviderConfig
from ..utils.logger import get_logger
from ..utils.errors import ProviderRejected
from ..utils.retry import retry_async

logger = get_logger(__name__)

WEBHOOK_PATHS = {
    WebhookKind.TRAINING: "/fal-ai/webhook/train",
    WebhookKind.IMAGE: "/fal-ai/webhook/image",
}


class FalAIClient(BaseProvider):
    """
    Client for fal.ai's queue and synchronous endpoints.

    Queue submissions return as soon as fal has accepted the job; the
    result is delivered later to the webhook URL registered with it.
    """

    name = "fal"

    def __init__(
        self,
        api_key: str,
        settings: ProviderConfig,
        webhook_base_url: str,
        webhook_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_key=api_key,
            base_url=settings.queue_base_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )
        self.settings = settings
        self.webhook_base_url = webhook_base_url.rstrip("/")
        self.webhook_secret = webhook_secret

    def _get_default_headers(self) -> dict:
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def webhook_url(self, kind: WebhookKind) -> str:
        """URL fal should call when a job of this kind completes."""
        url = f"{self.webhook_base_url}{WEBHOOK_PATHS[kind]}"
        if self.webhook_secret:
            url = str(httpx.URL(url, params={"token": self.webhook_secret}))
        return url

    def _lora(self, tensor_path: str) -> Dict[str, Any]:
        return {"path": tensor_path, "scale": self.settings.lora_scale}

    async def submit_training(self, zip_url: str, job_name: str) -> SubmissionReceipt:
        """
        Queue a LoRA training job on the uploaded image archive.

        Args:
            zip_url: Public URL of the zip of training photos
            job_name: Trigger word for the trained LoRA

        Returns:
            SubmissionReceipt with fal's request id

        Raises:
            ProviderUnavailable: fal unreachable or failing
            ProviderRejected: fal refused the input
        """
        payload = {
            "images_data_url": zip_url,
            "trigger_word": job_name,
        }
        return await self._submit(
            self.settings.training_app, payload, WebhookKind.TRAINING
        )

    async def submit_generation(self, prompt: str, tensor_path: str) -> SubmissionReceipt:
        """Queue one image generation against a trained LoRA."""
        payload = {
            "prompt": prompt,
            "loras": [self._lora(tensor_path)],
        }
        return await self._submit(
            self.settings.generation_app, payload, WebhookKind.IMAGE
        )

    async def _submit(
        self,
        app_id: str,
        payload: Dict[str, Any],
        kind: WebhookKind,
    ) -> SubmissionReceipt:
        logger.info(
            f"Submitting to fal: {app_id}",
            extra={"app_id": app_id, "kind": kind.value}
        )

        response = await self._post(
            f"{self.base_url}/{app_id}",
            params={"fal_webhook": self.webhook_url(kind)},
            json=payload,
        )
        result = self._json(response)

        request_id = result.get("request_id")
        if not request_id:
            logger.error("No request_id in fal acknowledgement", extra={"response": result})
            raise ProviderRejected(self.name, "No request_id in response", response.status_code)

        logger.info(
            f"fal job queued: {request_id}",
            extra={"app_id": app_id, "request_id": request_id}
        )

        return SubmissionReceipt(
            request_id=request_id,
            response_url=result.get("response_url"),
            status_url=result.get("status_url"),
        )

    @retry_async(max_attempts=3)
    async def generate_image_sync(self, tensor_path: str) -> str:
        """
        Generate one image synchronously and return its URL.

        Used for model thumbnails. Blocks until fal returns the image or the
        sync timeout expires. Safe to retry: nothing is correlated with it.
        """
        app_id = self.settings.generation_app

        response = await self._post(
            f"{self.settings.sync_base_url.rstrip('/')}/{app_id}",
            json={
                "prompt": self.settings.thumbnail_prompt,
                "loras": [self._lora(tensor_path)],
            },
            timeout=self.settings.sync_timeout_seconds,
        )

        images = self._json(response).get("images") or []
        if not images or not images[0].get("url"):
            raise ProviderRejected(self.name, "No image in sync response", response.status_code)

        image_url = images[0]["url"]
        logger.info(
            "Thumbnail generated",
            extra={"app_id": app_id, "image_url": image_url[:100]}
        )
        return image_url
