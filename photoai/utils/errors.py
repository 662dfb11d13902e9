"""Custom exception classes for the photo AI backend."""

from typing import Optional


class PhotoAIError(Exception):
    """Base exception for all backend errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__.strip()
        super().__init__(self.message)


class ConfigurationError(PhotoAIError):
    """Configuration or initialization errors."""
    pass


class ValidationError(PhotoAIError):
    """Input incorrect"""

    status_code = 411


class ModelNotReady(ValidationError):
    """Model not found"""
    pass


class AuthenticationError(PhotoAIError):
    """Unauthorized"""

    status_code = 401


class WebhookVerificationError(AuthenticationError):
    """Webhook verification failed"""
    pass


class StorageError(PhotoAIError):
    """Database operation failed"""
    pass


class ProviderError(PhotoAIError):
    """Generic provider API error with status code."""

    status_code = 502

    def __init__(self, provider: str, message: str, upstream_status: Optional[int] = None):
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(f"{provider} error: {message}")


class ProviderUnavailable(ProviderError):
    """Provider could not be reached or failed on its side (transport, 5xx, 429)."""
    pass


class ProviderRejected(ProviderError):
    """Provider refused the job (4xx or malformed acknowledgement)."""
    pass
