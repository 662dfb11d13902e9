"""Utility modules for configuration, logging, and error handling."""

from .config import load_config
from .logger import get_logger
from .retry import retry_async
from .concurrency import gather_all_or_nothing

__all__ = [
    "load_config",
    "get_logger",
    "retry_async",
    "gather_all_or_nothing",
]
