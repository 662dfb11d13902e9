"""Data models and schemas for the photo AI backend."""

from .schemas import (
    TrainModelRequest,
    GenerateImageRequest,
    GenerateImagesFromPackRequest,
    ModelRecord,
    OutputImageRecord,
    PackRecord,
    PackPromptRecord,
    WebhookInboxEntry,
    SubmissionReceipt,
    FalWebhookPayload,
)
from .enums import (
    JobStatus,
    WebhookKind,
    WebhookOutcome,
)

__all__ = [
    "TrainModelRequest",
    "GenerateImageRequest",
    "GenerateImagesFromPackRequest",
    "ModelRecord",
    "OutputImageRecord",
    "PackRecord",
    "PackPromptRecord",
    "WebhookInboxEntry",
    "SubmissionReceipt",
    "FalWebhookPayload",
    "JobStatus",
    "WebhookKind",
    "WebhookOutcome",
]
