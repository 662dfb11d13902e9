"""Clients for external services."""

from .fal import FalAIClient
from .object_storage import UploadGateway

__all__ = [
    "FalAIClient",
    "UploadGateway",
]
