"""Caller authentication and webhook trust checks."""

import hmac
from typing import List, Optional

import jwt

from ..utils.errors import AuthenticationError, WebhookVerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuthGate:
    """
    Resolves a bearer token issued by the auth provider into a user id.

    The token is a JWT signed by the provider; the user id is its ``sub``
    claim. Nothing is fetched over the network: the verification key comes
    from configuration.
    """

    def __init__(self, key: str, algorithms: List[str], leeway: float = 5.0):
        # PEM keys pasted into .env usually carry literal "\n"
        self.key = key.replace("\\n", "\n")
        self.algorithms = algorithms
        self.leeway = leeway

    def resolve_header(self, authorization: Optional[str]) -> str:
        """User id from an ``Authorization: Bearer <jwt>`` header value."""
        if not authorization:
            raise AuthenticationError("No token provided")

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Malformed authorization header")

        return self.resolve(token.strip())

    def resolve(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=self.algorithms,
                leeway=self.leeway,
                options={"require": ["sub"], "verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected bearer token", extra={"error": str(e)})
            raise AuthenticationError("Invalid token")

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token")
        return str(user_id)


class WebhookVerifier:
    """
    Decides whether an inbound webhook came from the provider.

    Two independent checks, each active only when configured: a shared
    secret carried as the ``token`` query parameter of the registered
    webhook URL, and an allow-list of source addresses.
    """

    def __init__(self, secret: Optional[str] = None, allowed_ips: Optional[List[str]] = None):
        self.secret = secret
        self.allowed_ips = set(allowed_ips or [])

    @property
    def enabled(self) -> bool:
        return bool(self.secret or self.allowed_ips)

    def verify(self, token: Optional[str], client_ip: Optional[str]) -> None:
        if self.secret:
            if not token or not hmac.compare_digest(token.encode(), self.secret.encode()):
                logger.warning(
                    "Invalid webhook token",
                    extra={"client_ip": client_ip}
                )
                raise WebhookVerificationError("Invalid webhook token")

        if self.allowed_ips and client_ip not in self.allowed_ips:
            logger.warning(
                "Webhook from address not on allow-list",
                extra={"client_ip": client_ip}
            )
            raise WebhookVerificationError("Webhook source not allowed")
