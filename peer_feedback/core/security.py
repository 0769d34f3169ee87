import hmac
import logging
from typing import Optional, Protocol
from peer_feedback.core.config import settings

logger = logging.getLogger(__name__)


class CredentialVerifier(Protocol):
    """Anything that can decide whether a presented bearer credential is valid."""

    def verify(self, credential: Optional[str]) -> bool:
        ...


class StaticTokenVerifier:
    """Compares the bearer credential against one shared secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("StaticTokenVerifier requires a non-empty secret")
        self._secret = secret.encode()

    def verify(self, credential: Optional[str]) -> bool:
        if not credential:
            return False
        return hmac.compare_digest(credential.encode(), self._secret)


_verifier: CredentialVerifier = StaticTokenVerifier(settings.admin_token)


def get_credential_verifier() -> CredentialVerifier:
    """FastAPI dependency; override it to plug in a different scheme."""
    return _verifier
