"""
Supabase storage accessor.

Handles:
- Connection management (async client, opened by the app lifespan)
- CRUD for models, output images, packs and pack prompts
- The webhook inbox used to replay early completions

Tables: models, output_images, packs, pack_prompts, webhook_inbox
(see migrations/001_init.sql).
"""

from typing import Any, Dict, List, Optional

from postgrest import AsyncPostgrestClient
from supabase import acreate_client

from .base import BaseStorage
from ..models.enums import JobStatus, WebhookKind
from ..models.schemas import (
    ModelRecord,
    OutputImageRecord,
    PackRecord,
    PackPromptRecord,
    WebhookInboxEntry,
)
from ..utils.errors import StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

MODELS = "models"
OUTPUT_IMAGES = "output_images"
PACKS = "packs"
PACK_PROMPTS = "pack_prompts"
WEBHOOK_INBOX = "webhook_inbox"


class SupabaseStorage(BaseStorage):
    """
    Storage accessor backed by Supabase (PostgREST).

    Only the PostgREST half of the Supabase client is used. ``db`` lets a
    caller hand in a ready AsyncPostgrestClient instead of connecting.
    """

    def __init__(self, url: str, key: str, db: Optional[AsyncPostgrestClient] = None):
        self.url = url
        self.key = key
        self._db = db

    async def initialize(self):
        if self._db is None:
            client = await acreate_client(self.url, self.key)
            self._db = client.postgrest
            logger.info("Supabase client initialized")

    async def close(self):
        if self._db is not None:
            await self._db.aclose()
            self._db = None
            logger.info("Supabase client closed")

    def _table(self, name: str):
        if self._db is None:
            raise RuntimeError("SupabaseStorage not initialized. Call initialize() first.")
        return self._db.from_(name)

    async def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        """Run a query builder, wrapping any failure in StorageError."""
        try:
            result = await query.execute()
        except Exception as e:
            logger.error(f"Supabase {action} failed: {e}", extra={"action": action})
            raise StorageError(f"{action} failed: {e}")
        return result.data or []

    # ==================== MODELS ====================

    async def create_model(self, data: Dict[str, Any]) -> ModelRecord:
        rows = await self._execute(self._table(MODELS).insert(data), "create model")
        return ModelRecord(**rows[0])

    async def get_model(self, model_id: str) -> Optional[ModelRecord]:
        rows = await self._execute(
            self._table(MODELS).select("*").eq("id", model_id).limit(1),
            "get model",
        )
        return ModelRecord(**rows[0]) if rows else None

    async def attach_model_request_id(self, model_id: str, request_id: str) -> ModelRecord:
        rows = await self._execute(
            self._table(MODELS)
            .update({"fal_ai_request_id": request_id})
            .eq("id", model_id)
            .is_("fal_ai_request_id", "null"),
            "attach model request id",
        )
        if not rows:
            raise StorageError(f"Model {model_id} missing or already has a request id")
        return ModelRecord(**rows[0])

    async def delete_model(self, model_id: str) -> None:
        await self._execute(self._table(MODELS).delete().eq("id", model_id), "delete model")

    async def find_models_by_request_id(self, request_id: str) -> List[ModelRecord]:
        rows = await self._execute(
            self._table(MODELS).select("*").eq("fal_ai_request_id", request_id),
            "find models by request id",
        )
        return [ModelRecord(**row) for row in rows]

    async def complete_models(
        self,
        request_id: str,
        tensor_path: str,
        thumbnail: Optional[str],
    ) -> List[ModelRecord]:
        rows = await self._execute(
            self._table(MODELS)
            .update({
                "training_status": JobStatus.GENERATED.value,
                "tensor_path": tensor_path,
                "thumbnail": thumbnail,
            })
            .eq("fal_ai_request_id", request_id)
            .eq("training_status", JobStatus.PENDING.value),
            "complete models",
        )
        return [ModelRecord(**row) for row in rows]

    async def list_visible_models(self, user_id: str) -> List[ModelRecord]:
        # One OR query, so a model that is both owned and open comes back once
        rows = await self._execute(
            self._table(MODELS)
            .select("*")
            .or_(f'user_id.eq."{user_id}",open.eq.true')
            .order("created_at", desc=True),
            "list visible models",
        )
        return [ModelRecord(**row) for row in rows]

    # ==================== OUTPUT IMAGES ====================

    async def create_output_images(self, rows: List[Dict[str, Any]]) -> List[OutputImageRecord]:
        if not rows:
            return []
        created = await self._execute(
            self._table(OUTPUT_IMAGES).insert(rows), "create output images"
        )
        # Return order is not guaranteed by PostgREST; realign on the ids we sent
        by_id = {row["id"]: OutputImageRecord(**row) for row in created}
        return [by_id[row["id"]] for row in rows]

    async def attach_output_image_request_ids(
        self,
        images: List[OutputImageRecord],
        request_ids: List[str],
    ) -> List[OutputImageRecord]:
        if len(images) != len(request_ids):
            raise ValueError("images and request_ids must be the same length")

        attached = []
        for image, request_id in zip(images, request_ids):
            # Set once: a row that already has an id, or is gone, is not touched
            rows = await self._execute(
                self._table(OUTPUT_IMAGES)
                .update({"fal_ai_request_id": request_id})
                .eq("id", image.id)
                .is_("fal_ai_request_id", "null"),
                "attach output image request id",
            )
            if not rows:
                raise StorageError(f"Output image {image.id} missing or already has a request id")
            attached.append(OutputImageRecord(**rows[0]))
        return attached

    async def delete_output_images(self, image_ids: List[str]) -> None:
        if not image_ids:
            return
        await self._execute(
            self._table(OUTPUT_IMAGES).delete().in_("id", image_ids),
            "delete output images",
        )

    async def find_output_images_by_request_id(self, request_id: str) -> List[OutputImageRecord]:
        rows = await self._execute(
            self._table(OUTPUT_IMAGES).select("*").eq("fal_ai_request_id", request_id),
            "find output images by request id",
        )
        return [OutputImageRecord(**row) for row in rows]

    async def complete_output_images(self, request_id: str, image_url: str) -> List[OutputImageRecord]:
        rows = await self._execute(
            self._table(OUTPUT_IMAGES)
            .update({
                "status": JobStatus.GENERATED.value,
                "image_url": image_url,
            })
            .eq("fal_ai_request_id", request_id)
            .eq("status", JobStatus.PENDING.value),
            "complete output images",
        )
        return [OutputImageRecord(**row) for row in rows]

    async def list_output_images(
        self,
        user_id: str,
        image_ids: Optional[List[str]],
        offset: int,
        limit: int,
    ) -> List[OutputImageRecord]:
        if image_ids is not None and not image_ids:
            return []
        query = self._table(OUTPUT_IMAGES).select("*").eq("user_id", user_id)
        if image_ids is not None:
            query = query.in_("id", image_ids)
        rows = await self._execute(
            query.order("created_at", desc=True).range(offset, offset + limit - 1),
            "list output images",
        )
        return [OutputImageRecord(**row) for row in rows]

    # ==================== PACKS ====================

    async def list_packs(self) -> List[PackRecord]:
        rows = await self._execute(self._table(PACKS).select("*"), "list packs")
        return [PackRecord(**row) for row in rows]

    async def get_pack(self, pack_id: str) -> Optional[PackRecord]:
        rows = await self._execute(
            self._table(PACKS).select("*").eq("id", pack_id).limit(1), "get pack"
        )
        return PackRecord(**rows[0]) if rows else None

    async def list_pack_prompts(self, pack_id: str) -> List[PackPromptRecord]:
        rows = await self._execute(
            self._table(PACK_PROMPTS).select("*").eq("pack_id", pack_id).order("id"),
            "list pack prompts",
        )
        return [PackPromptRecord(**row) for row in rows]

    # ==================== WEBHOOK INBOX ====================

    async def record_webhook(
        self,
        kind: WebhookKind,
        request_id: str,
        payload: Dict[str, Any],
    ) -> WebhookInboxEntry:
        rows = await self._execute(
            self._table(WEBHOOK_INBOX).insert({
                "kind": kind.value,
                "request_id": request_id,
                "payload": payload,
            }),
            "record webhook",
        )
        return WebhookInboxEntry(**rows[0])

    async def take_webhooks(
        self,
        kind: WebhookKind,
        request_ids: List[str],
    ) -> List[WebhookInboxEntry]:
        if not request_ids:
            return []
        # DELETE ... RETURNING: concurrent takers never get the same entry
        rows = await self._execute(
            self._table(WEBHOOK_INBOX)
            .delete()
            .eq("kind", kind.value)
            .in_("request_id", request_ids),
            "take webhooks",
        )
        return [WebhookInboxEntry(**row) for row in rows]
