"""Abstract storage accessor over the backend's record kinds."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models.enums import WebhookKind
from ..models.schemas import (
    ModelRecord,
    OutputImageRecord,
    PackRecord,
    PackPromptRecord,
    WebhookInboxEntry,
)


class BaseStorage(ABC):
    """
    Async CRUD over models, output images, packs and the webhook inbox.

    Implementations raise StorageError on database failures; nothing is
    swallowed. Completion updates are conditional on the row still being
    Pending, so a status can never move backwards.
    """

    async def initialize(self):
        """Open connections. Called from the app lifespan."""

    async def close(self):
        """Release connections."""

    # ==================== MODELS ====================

    @abstractmethod
    async def create_model(self, data: Dict[str, Any]) -> ModelRecord:
        """Insert a Model row and return it."""

    @abstractmethod
    async def get_model(self, model_id: str) -> Optional[ModelRecord]:
        """Model by primary key, or None."""

    @abstractmethod
    async def attach_model_request_id(self, model_id: str, request_id: str) -> ModelRecord:
        """Set the provider request id on a row that has none yet."""

    @abstractmethod
    async def delete_model(self, model_id: str) -> None:
        """Remove a placeholder whose provider submission failed."""

    @abstractmethod
    async def find_models_by_request_id(self, request_id: str) -> List[ModelRecord]:
        """All models carrying this provider request id."""

    @abstractmethod
    async def complete_models(
        self,
        request_id: str,
        tensor_path: str,
        thumbnail: Optional[str],
    ) -> List[ModelRecord]:
        """Move Pending models with this request id to Generated; return the rows changed."""

    @abstractmethod
    async def list_visible_models(self, user_id: str) -> List[ModelRecord]:
        """Models owned by the user plus every open model, each once."""

    # ==================== OUTPUT IMAGES ====================

    @abstractmethod
    async def create_output_images(self, rows: List[Dict[str, Any]]) -> List[OutputImageRecord]:
        """Bulk insert. The result is index-aligned with ``rows``."""

    @abstractmethod
    async def attach_output_image_request_ids(
        self,
        images: List[OutputImageRecord],
        request_ids: List[str],
    ) -> List[OutputImageRecord]:
        """Give ``images[i]`` the request id ``request_ids[i]``; each row only if it has none yet."""

    @abstractmethod
    async def delete_output_images(self, image_ids: List[str]) -> None:
        """Remove placeholders whose provider submissions failed."""

    @abstractmethod
    async def find_output_images_by_request_id(self, request_id: str) -> List[OutputImageRecord]:
        """All output images carrying this provider request id."""

    @abstractmethod
    async def complete_output_images(self, request_id: str, image_url: str) -> List[OutputImageRecord]:
        """Move Pending images with this request id to Generated; return the rows changed."""

    @abstractmethod
    async def list_output_images(
        self,
        user_id: str,
        image_ids: Optional[List[str]],
        offset: int,
        limit: int,
    ) -> List[OutputImageRecord]:
        """Page of the user's images, newest first; restricted to ``image_ids`` unless it is None."""

    # ==================== PACKS ====================

    @abstractmethod
    async def list_packs(self) -> List[PackRecord]:
        """Every pack."""

    @abstractmethod
    async def get_pack(self, pack_id: str) -> Optional[PackRecord]:
        """Pack by primary key, or None."""

    @abstractmethod
    async def list_pack_prompts(self, pack_id: str) -> List[PackPromptRecord]:
        """Prompts belonging to a pack."""

    # ==================== WEBHOOK INBOX ====================

    @abstractmethod
    async def record_webhook(
        self,
        kind: WebhookKind,
        request_id: str,
        payload: Dict[str, Any],
    ) -> WebhookInboxEntry:
        """Hold a completion that matched no row."""

    @abstractmethod
    async def take_webhooks(
        self,
        kind: WebhookKind,
        request_ids: List[str],
    ) -> List[WebhookInboxEntry]:
        """Remove and return held completions for these request ids."""
