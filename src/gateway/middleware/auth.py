"""JWT authentication middleware.

- No token -> 401
- Invalid/expired token -> 401
- Valid token -> the ``sub`` claim is the product user id
- healthz / metrics exempt

Identity is established upstream (OIDC, sessions); hubguard only verifies
the bearer token and authorizes. Uses PyJWT (HS256). Secret must come from
environment, never hardcoded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import jwt

from src.shared.errors import AuthenticationError

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload."""

    user_id: str


def encode_token(
    *,
    user_id: str,
    secret: str,
    ttl_seconds: int = 3600,
) -> str:
    """Create a signed JWT whose subject is the product user id."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_token(token: str, *, secret: str) -> TokenPayload:
    """Decode and validate a JWT. Raises AuthenticationError on failure."""
    try:
        data = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(f"Invalid token: {exc}") from exc

    subject = data.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthenticationError("Invalid token: missing subject")
    return TokenPayload(user_id=subject)


class JWTAuthMiddleware:
    """JWT auth check for gateway requests.

    Exempt paths (healthz, metrics, docs) skip authentication entirely.
    """

    def __init__(
        self,
        *,
        secret: str,
        exempt_paths: list[str] | None = None,
    ) -> None:
        self._secret = secret
        self._exempt_paths = set(exempt_paths or [])

    def is_exempt(self, path: str) -> bool:
        return path in self._exempt_paths

    def authenticate(self, *, token: str | None, path: str) -> TokenPayload | None:
        """Authenticate request. Returns None for exempt paths.

        Raises AuthenticationError for missing/invalid tokens on
        non-exempt paths.
        """
        if self.is_exempt(path):
            return None

        if not token:
            raise AuthenticationError("Missing or malformed Authorization header")

        return decode_token(token, secret=self._secret)
