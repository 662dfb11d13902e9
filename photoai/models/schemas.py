"""Pydantic schemas for request validation, stored records and responses."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from uuid import UUID

from .enums import JobStatus, ModelType, Ethnicity, EyeColor, WebhookOutcome


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase, serializes camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()


# === REQUEST BODIES ===

class TrainModelRequest(CamelModel):
    """Body of POST /ai/training."""
    name: str = Field(..., min_length=1)
    type: ModelType
    age: int = Field(..., ge=0, le=150)
    ethinicity: Ethnicity
    eye_color: EyeColor
    bald: bool
    zip_url: str = Field(..., min_length=1)


class GenerateImageRequest(CamelModel):
    """Body of POST /ai/generate."""
    prompt: str = Field(..., min_length=1)
    model_id: UUID


class GenerateImagesFromPackRequest(CamelModel):
    """Body of POST /pack/generate."""
    model_id: UUID
    pack_id: UUID


# === STORED RECORDS ===

class ModelRecord(CamelModel):
    """A user's training job and, once trained, the LoRA it produced."""
    id: str
    user_id: str
    name: str
    type: ModelType
    age: int
    ethinicity: Ethnicity
    eye_color: EyeColor
    bald: bool
    zip_url: str
    fal_ai_request_id: Optional[str] = None
    training_status: JobStatus = JobStatus.PENDING
    tensor_path: Optional[str] = None
    thumbnail: Optional[str] = None
    open: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_ready(self) -> bool:
        return bool(self.tensor_path)


class OutputImageRecord(CamelModel):
    """One requested generation."""
    id: str
    user_id: str
    prompt: str
    model_id: str
    fal_ai_request_id: Optional[str] = None
    image_url: str = ""
    status: JobStatus = JobStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PackRecord(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    image_url1: Optional[str] = None
    image_url2: Optional[str] = None
    created_at: Optional[datetime] = None


class PackPromptRecord(CamelModel):
    id: str
    pack_id: str
    prompt: str


class WebhookInboxEntry(BaseModel):
    """A completion that arrived before any row carried its request id."""
    id: str
    kind: str
    request_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: Optional[datetime] = None


# === PROVIDER ===

class SubmissionReceipt(BaseModel):
    """Acknowledgement of a queued provider job."""
    request_id: str
    response_url: Optional[str] = None
    status_url: Optional[str] = None


class FalWebhookPayload(BaseModel):
    """
    Body posted by fal.ai when a queued job finishes.

    Flat ``tensor_path`` / ``image_url`` fields win; otherwise the result is
    read from fal's nested ``payload`` object.
    """
    request_id: str = Field(..., min_length=1)
    gateway_request_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    tensor_path: Optional[str] = None
    image_url: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return (self.status or "").upper() == "ERROR"

    def resolved_tensor_path(self) -> Optional[str]:
        if self.tensor_path:
            return self.tensor_path
        lora_file = (self.payload or {}).get("diffusers_lora_file") or {}
        return lora_file.get("url")

    def resolved_image_url(self) -> Optional[str]:
        if self.image_url:
            return self.image_url
        images = (self.payload or {}).get("images") or []
        if images and isinstance(images[0], dict):
            return images[0].get("url")
        return None


# === RESPONSES ===

class PresignedUpload(BaseModel):
    url: str
    key: str


class TrainModelResponse(CamelModel):
    model_id: str


class GenerateImageResponse(CamelModel):
    image_id: str


class PackGenerateResponse(BaseModel):
    images: List[str]


class PackListResponse(BaseModel):
    packs: List[PackRecord]


class ImageListResponse(BaseModel):
    images: List[OutputImageRecord]


class ModelListResponse(BaseModel):
    models: List[ModelRecord]


class WebhookAck(BaseModel):
    message: str = "Webhook received"
    outcome: WebhookOutcome
