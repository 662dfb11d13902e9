"""
Job correlation between outbound provider requests and inbound webhooks.

Submission inserts a Pending placeholder first, then asks the provider for
a job, then stamps the provider's request id onto the placeholder. The
request id is the only thing the completion webhook carries, so it is
written once and never changed.

Completion moves every Pending row carrying the request id to Generated.
A webhook that finds no row (it beat the stamping step, or the id is
unknown) is parked in the webhook inbox; submissions drain the inbox for
their own ids right after stamping, which closes the race.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..models.enums import JobStatus, WebhookKind, WebhookOutcome
from ..models.schemas import (
    GenerateImageRequest,
    GenerateImagesFromPackRequest,
    ModelRecord,
    OutputImageRecord,
    TrainModelRequest,
)
from ..providers.fal import FalAIClient
from ..storage.base import BaseStorage
from ..utils.concurrency import gather_all_or_nothing
from ..utils.errors import ModelNotReady, StorageError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class JobCorrelationWorkflow:
    """Submits provider jobs and applies their completions."""

    def __init__(self, storage: BaseStorage, provider: FalAIClient):
        self.storage = storage
        self.provider = provider

    # ==================== SUBMISSION ====================

    async def submit_training(self, user_id: str, request: TrainModelRequest) -> ModelRecord:
        """
        Start LoRA training for the uploaded archive.

        Returns:
            The Model row, Pending, carrying the provider's request id

        Raises:
            ProviderError: provider refused or was unreachable (no row remains)
        """
        placeholder = await self.storage.create_model({
            **request.model_dump(mode="json"),
            "id": _new_id(),
            "user_id": user_id,
            "training_status": JobStatus.PENDING.value,
            "fal_ai_request_id": None,
        })

        try:
            receipt = await self.provider.submit_training(request.zip_url, request.name)
            model = await self.storage.attach_model_request_id(placeholder.id, receipt.request_id)
        except BaseException:
            # Also on cancellation, so no placeholder outlives its request
            await self._discard_models(placeholder.id)
            raise

        logger.info(
            "Training submitted",
            extra={"model_id": model.id, "request_id": receipt.request_id, "user_id": user_id}
        )

        if await self.reconcile(WebhookKind.TRAINING, [receipt.request_id]):
            model = await self.storage.get_model(model.id) or model
        return model

    async def submit_generation(self, user_id: str, request: GenerateImageRequest) -> OutputImageRecord:
        """
        Generate one image with a trained model.

        Raises:
            ModelNotReady: model missing, not visible to the caller, or untrained
            ProviderError: provider refused or was unreachable (no row remains)
        """
        model = await self._ready_model(user_id, str(request.model_id))
        images = await self._submit_images(user_id, model, [request.prompt])
        return images[0]

    async def submit_pack(
        self,
        user_id: str,
        request: GenerateImagesFromPackRequest,
    ) -> List[OutputImageRecord]:
        """
        Generate one image per prompt of a pack, all or nothing.

        Returns:
            OutputImage rows, row ``i`` for prompt ``i``

        Raises:
            ModelNotReady: model missing, not visible to the caller, or untrained
            ValidationError: unknown pack or pack without prompts
            ProviderError: any submission failed (no rows remain)
        """
        model = await self._ready_model(user_id, str(request.model_id))

        pack = await self.storage.get_pack(str(request.pack_id))
        if pack is None:
            raise ValidationError("Pack not found")

        prompts = await self.storage.list_pack_prompts(pack.id)
        if not prompts:
            raise ValidationError("Pack has no prompts")

        images = await self._submit_images(user_id, model, [p.prompt for p in prompts])

        logger.info(
            f"Pack submitted: {len(images)} images",
            extra={"pack_id": pack.id, "model_id": model.id, "user_id": user_id}
        )
        return images

    async def _submit_images(
        self,
        user_id: str,
        model: ModelRecord,
        prompts: List[str],
    ) -> List[OutputImageRecord]:
        placeholders = await self.storage.create_output_images([
            {
                "id": _new_id(),
                "user_id": user_id,
                "prompt": prompt,
                "model_id": model.id,
                "image_url": "",
                "status": JobStatus.PENDING.value,
                "fal_ai_request_id": None,
            }
            for prompt in prompts
        ])

        try:
            receipts = await gather_all_or_nothing(
                self.provider.submit_generation(prompt, model.tensor_path)
                for prompt in prompts
            )
            request_ids = [receipt.request_id for receipt in receipts]
            images = await self.storage.attach_output_image_request_ids(placeholders, request_ids)
        except BaseException:
            await self._discard_images([image.id for image in placeholders])
            raise

        logger.info(
            f"Generation submitted: {len(images)} jobs",
            extra={"model_id": model.id, "request_ids": request_ids, "user_id": user_id}
        )

        if await self.reconcile(WebhookKind.IMAGE, request_ids):
            images = await self._refresh_images(images)
        return images

    async def _ready_model(self, user_id: str, model_id: str) -> ModelRecord:
        model = await self.storage.get_model(model_id)
        if model is None or not (model.user_id == user_id or model.open):
            raise ModelNotReady("Model not found")
        if not model.is_ready:
            raise ModelNotReady("Model not found")
        return model

    async def _refresh_images(self, images: List[OutputImageRecord]) -> List[OutputImageRecord]:
        refreshed = []
        for image in images:
            rows = await self.storage.find_output_images_by_request_id(image.fal_ai_request_id)
            refreshed.append(rows[0] if rows else image)
        return refreshed

    async def _discard_models(self, model_id: str):
        try:
            await self.storage.delete_model(model_id)
        except StorageError as e:
            logger.error(
                "Could not remove model placeholder after failed submission",
                extra={"model_id": model_id, "error": str(e)}
            )

    async def _discard_images(self, image_ids: List[str]):
        try:
            await self.storage.delete_output_images(image_ids)
        except StorageError as e:
            logger.error(
                "Could not remove image placeholders after failed submission",
                extra={"image_ids": image_ids, "error": str(e)}
            )

    # ==================== COMPLETION ====================

    async def complete_training(self, request_id: str, tensor_path: str) -> WebhookOutcome:
        """
        Apply a training completion: render a thumbnail, then mark Generated.

        Redeliveries for an already Generated model skip the thumbnail call.
        """
        existing = await self.storage.find_models_by_request_id(request_id)
        if existing and all(m.training_status == JobStatus.GENERATED for m in existing):
            return self._log_outcome(WebhookKind.TRAINING, request_id, WebhookOutcome.DUPLICATE)

        thumbnail = await self.provider.generate_image_sync(tensor_path)
        return await self._settle(
            WebhookKind.TRAINING,
            request_id,
            {"tensor_path": tensor_path, "thumbnail": thumbnail},
        )

    async def complete_image(self, request_id: str, image_url: str) -> WebhookOutcome:
        """Apply a generation completion."""
        return await self._settle(WebhookKind.IMAGE, request_id, {"image_url": image_url})

    def record_failure(self, kind: WebhookKind, request_id: str, error: Optional[str]) -> WebhookOutcome:
        """Provider reported a failed job. There is no failed state; the row stays Pending."""
        logger.error(
            "Provider reported job failure",
            extra={"kind": kind.value, "request_id": request_id, "error": error}
        )
        return WebhookOutcome.IGNORED

    async def reconcile(self, kind: WebhookKind, request_ids: List[str]) -> int:
        """
        Replay inbox entries for these request ids.

        Returns:
            Number of entries that changed a row
        """
        entries = await self.storage.take_webhooks(kind, request_ids)
        applied = 0
        for entry in entries:
            outcome = await self._apply(kind, entry.request_id, entry.payload)
            if outcome is None:
                # Still nothing to attach it to; put it back
                await self.storage.record_webhook(kind, entry.request_id, entry.payload)
                continue
            if outcome == WebhookOutcome.APPLIED:
                applied += 1
            self._log_outcome(kind, entry.request_id, outcome, replayed=True)
        return applied

    async def _settle(self, kind: WebhookKind, request_id: str, result: Dict[str, Any]) -> WebhookOutcome:
        outcome = await self._apply(kind, request_id, result)
        if outcome is not None:
            return self._log_outcome(kind, request_id, outcome)

        await self.storage.record_webhook(kind, request_id, result)

        # A submission may have stamped this id after our update missed it
        # and drained the inbox before our entry landed
        if await self._rows_for(kind, request_id):
            if await self.reconcile(kind, [request_id]):
                return WebhookOutcome.APPLIED

        return self._log_outcome(kind, request_id, WebhookOutcome.DEFERRED)

    async def _apply(
        self,
        kind: WebhookKind,
        request_id: str,
        result: Dict[str, Any],
    ) -> Optional[WebhookOutcome]:
        """Conditional Pending -> Generated update. None when no row has the id."""
        if kind == WebhookKind.TRAINING:
            updated = await self.storage.complete_models(
                request_id, result["tensor_path"], result.get("thumbnail")
            )
        else:
            updated = await self.storage.complete_output_images(request_id, result["image_url"])

        if updated:
            return WebhookOutcome.APPLIED
        if await self._rows_for(kind, request_id):
            return WebhookOutcome.DUPLICATE
        return None

    async def _rows_for(self, kind: WebhookKind, request_id: str) -> list:
        if kind == WebhookKind.TRAINING:
            return await self.storage.find_models_by_request_id(request_id)
        return await self.storage.find_output_images_by_request_id(request_id)

    def _log_outcome(
        self,
        kind: WebhookKind,
        request_id: str,
        outcome: WebhookOutcome,
        replayed: bool = False,
    ) -> WebhookOutcome:
        extra = {
            "kind": kind.value,
            "request_id": request_id,
            "outcome": outcome.value,
            "replayed": replayed,
        }
        if outcome == WebhookOutcome.DEFERRED:
            logger.warning("Webhook matched no row; held in inbox", extra=extra)
        else:
            logger.info(f"Webhook {outcome.value}", extra=extra)
        return outcome
