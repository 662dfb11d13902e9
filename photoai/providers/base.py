"""Shared HTTP plumbing for AI providers."""

from abc import ABC, abstractmethod
import httpx
from typing import Any, Optional

from ..utils.errors import ProviderRejected, ProviderUnavailable
from ..utils.logger import get_logger

logger = get_logger(__name__)


class BaseProvider(ABC):
    """
    Owns one httpx.AsyncClient and maps HTTP failures onto the provider
    error taxonomy: transport errors, 429 and 5xx are ProviderUnavailable,
    every other non-2xx is ProviderRejected.
    """

    name = "provider"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Provider API key
            base_url: Root URL for queue submissions
            timeout: Default request timeout in seconds
            transport: httpx transport override (tests pass a MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Open the HTTP client. Safe to call twice."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._get_default_headers(),
                transport=self.transport,
            )
            logger.info(f"{self.name} client opened", extra={"provider": self.name})

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info(f"{self.name} client closed", extra={"provider": self.name})

    @abstractmethod
    def _get_default_headers(self) -> dict:
        """Headers sent with every request (auth, content type)."""

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        """
        POST and return a 2xx response.

        Raises:
            ProviderUnavailable: transport failure, 429 or 5xx
            ProviderRejected: any other non-2xx
        """
        if self.client is None:
            raise RuntimeError(
                f"{self.__class__.__name__} not initialized. "
                "Call initialize() or use as async context manager."
            )

        try:
            response = await self.client.post(url, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                f"{self.name} transport error: {type(e).__name__}",
                extra={"provider": self.name, "url": url, "error": str(e)}
            )
            raise ProviderUnavailable(self.name, f"Request failed: {e}")

        if response.is_success:
            return response

        status = response.status_code
        body = response.text[:500]
        logger.error(
            f"{self.name} HTTP {status}",
            extra={"provider": self.name, "url": url, "status": status, "response": body}
        )

        error_cls = ProviderUnavailable if status == 429 or status >= 500 else ProviderRejected
        raise error_cls(self.name, f"HTTP {status}: {body}", status)

    def _json(self, response: httpx.Response) -> dict:
        """Decode a success body; a non-JSON acknowledgement is a rejection."""
        try:
            return response.json()
        except ValueError:
            raise ProviderRejected(self.name, "Response is not JSON", response.status_code)
