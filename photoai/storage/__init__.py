"""Database access."""

from .base import BaseStorage
from .supabase_client import SupabaseStorage

__all__ = [
    "BaseStorage",
    "SupabaseStorage",
]
