"""HTTP routers."""

from . import ai, health, library, packs, uploads, webhooks

__all__ = ["ai", "health", "library", "packs", "uploads", "webhooks"]
