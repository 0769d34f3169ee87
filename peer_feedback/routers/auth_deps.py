"""
Admin access dependency.
The credential check itself is pluggable through get_credential_verifier.
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from peer_feedback.core.exceptions import AuthenticationError
from peer_feedback.core.security import CredentialVerifier, get_credential_verifier

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must produce our 401 body, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> None:
    token = credentials.credentials if credentials else None
    if not verifier.verify(token):
        logger.warning("Admin authentication failed: missing or invalid bearer token")
        raise AuthenticationError()
