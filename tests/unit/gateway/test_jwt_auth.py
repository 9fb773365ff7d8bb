# ruff: noqa: S106  -- test fixtures require hardcoded secret values
"""Bearer JWT authentication tests.

Validates:
- The ``sub`` claim is the product user id
- Missing, malformed, expired or foreign-signed tokens raise AuthenticationError
- Exempt paths skip authentication
"""

from __future__ import annotations

import jwt
import pytest

from src.gateway.middleware.auth import (
    JWTAuthMiddleware,
    TokenPayload,
    decode_token,
    encode_token,
)
from src.shared.errors import AuthenticationError

SECRET = "test-secret-key"


@pytest.mark.unit
class TestTokenEncoding:
    def test_decode_round_trip(self) -> None:
        token = encode_token(user_id="alice", secret=SECRET)
        assert decode_token(token, secret=SECRET) == TokenPayload(user_id="alice")

    def test_decode_invalid_token_raises(self) -> None:
        with pytest.raises(AuthenticationError):
            decode_token("not-a-valid-jwt", secret=SECRET)

    def test_decode_wrong_secret_raises(self) -> None:
        token = encode_token(user_id="alice", secret="secret-a")
        with pytest.raises(AuthenticationError):
            decode_token(token, secret="secret-b")

    def test_decode_expired_token_raises(self) -> None:
        token = encode_token(user_id="alice", secret=SECRET, ttl_seconds=-1)
        with pytest.raises(AuthenticationError, match="expired"):
            decode_token(token, secret=SECRET)

    @pytest.mark.parametrize("claims", [{}, {"sub": ""}, {"sub": 42}])
    def test_missing_subject(self, claims: dict[str, object]) -> None:
        token = jwt.encode(claims, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_token(token, secret=SECRET)

    def test_none_algorithm_rejected(self) -> None:
        token = jwt.encode({"sub": "alice"}, None, algorithm="none")
        with pytest.raises(AuthenticationError):
            decode_token(token, secret=SECRET)


@pytest.mark.unit
class TestJWTAuthMiddleware:
    @pytest.fixture
    def middleware(self) -> JWTAuthMiddleware:
        return JWTAuthMiddleware(secret=SECRET, exempt_paths=["/healthz", "/metrics"])

    def test_exempt_path_returns_none(self, middleware: JWTAuthMiddleware) -> None:
        assert middleware.authenticate(token=None, path="/healthz") is None

    def test_missing_token(self, middleware: JWTAuthMiddleware) -> None:
        with pytest.raises(AuthenticationError):
            middleware.authenticate(token=None, path="/api/v1/me/permissions")

    def test_valid_token(self, middleware: JWTAuthMiddleware) -> None:
        token = encode_token(user_id="mod", secret=SECRET)
        payload = middleware.authenticate(token=token, path="/api/v1/me/permissions")
        assert payload is not None
        assert payload.user_id == "mod"
