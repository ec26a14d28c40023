"""Identity resolution: bearer credential -> opaque user id.

Public interface:
    ``resolve_identity`` -- plain function, raises AuthenticationError.
    ``require_user``     -- FastAPI dependency returning the user id string.

The folder tree never sees the request; routes pass the returned user id
to the service explicitly. When ``settings.auth_enabled`` is False every
request resolves to ``ANONYMOUS_USER`` so local development needs no tokens.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import decode_token
from ..exceptions import AuthenticationError

ANONYMOUS_USER = "anonymous"

_bearer_scheme = HTTPBearer(auto_error=False)


def resolve_identity(credential: Optional[str]) -> str:
    """Return the user id carried by *credential*.

    Raises:
        AuthenticationError: missing, malformed, badly signed, or expired
            credential, or one without a subject.
    """
    if not credential:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(credential, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    if not payload.sub:
        raise AuthenticationError("Token is missing the user subject")
    return payload.sub


def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """Resolve the calling user once per request."""
    if not settings.auth_enabled:
        return ANONYMOUS_USER

    return resolve_identity(credentials.credentials if credentials is not None else None)
