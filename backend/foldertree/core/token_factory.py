"""Pure functions for issuing and verifying HS256 bearer tokens.

The token subject is the opaque user id the folder tree is scoped by.
No classes with behaviour, no state: encode and decode only.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "foldertree"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded token claims. Immutable."""
    sub: str
    exp: datetime


def create_token(
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Issue a signed token whose ``sub`` claim is *subject*.

    Args:
        subject: Stable user identifier.
        secret: HMAC signing key.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry (negative values produce expired tokens).
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = int(time.time())
    header = {"alg": "HS256", "typ": "JWT"}
    claims = {
        "sub": subject,
        "iat": now,
        "exp": now + expires_hours * 3600,
        "iss": ISSUER,
    }
    signing_input = _b64encode(json.dumps(header).encode()) + b"." + _b64encode(json.dumps(claims).encode())
    return (signing_input + b"." + _b64encode(_sign(signing_input, secret))).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Verify signature, issuer and expiry.

    Returns ``None`` on any failure rather than raising; callers decide what
    absence means.
    """
    if algorithm != "HS256":
        return None
    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        header_b64, claims_b64, signature_b64 = parts
        expected = _sign(header_b64 + b"." + claims_b64, secret)
        if not hmac.compare_digest(expected, _b64decode(signature_b64)):
            return None

        header = json.loads(_b64decode(header_b64))
        if header.get("alg") != "HS256":
            return None

        claims = json.loads(_b64decode(claims_b64))
        if claims.get("iss") != ISSUER:
            return None
        exp = int(claims.get("exp", 0))
        if time.time() > exp:
            return None

        return TokenPayload(
            sub=str(claims.get("sub") or ""),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, ValueError, TypeError, AttributeError):
        return None


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))
