"""Core business logic components."""

from .auth import AuthGate, WebhookVerifier
from .jobs import JobCorrelationWorkflow

__all__ = [
    "AuthGate",
    "WebhookVerifier",
    "JobCorrelationWorkflow",
]
