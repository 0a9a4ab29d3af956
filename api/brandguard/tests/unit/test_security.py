"""Unit tests for caller identity resolution."""

from unittest.mock import Mock, patch

import jwt
import pytest
from fastapi import HTTPException

from brandguard.core.config import settings
from brandguard.core.security import Identity, JWTVerifier, current_identity


def _request(headers=None):
    request = Mock()
    request.headers = headers or {}
    request.state = Mock()
    return request


class TestCurrentIdentity:
    """Test cases for current_identity."""

    def test_name_from_header(self):
        identity = current_identity(_request({"X-User-Name": "  Dana   Scully "}))

        assert identity == Identity(user_id=None, user_name="Dana Scully")

    def test_name_is_capped(self):
        identity = current_identity(_request({"X-User-Name": "x" * 300}))

        assert len(identity.user_name) == 100

    def test_anonymous(self):
        assert current_identity(_request()).user_name is None

    def test_auth_requires_bearer(self, monkeypatch):
        monkeypatch.setattr(settings, "enable_inapp_auth", True)

        with pytest.raises(HTTPException) as exc_info:
            current_identity(_request())
        assert exc_info.value.status_code == 401

    def test_auth_uses_claims(self, monkeypatch):
        monkeypatch.setattr(settings, "enable_inapp_auth", True)
        verifier = Mock()
        verifier.verify.return_value = {"sub": "user_1", "email": "dana@example.com"}
        request = _request({"Authorization": "Bearer token-abc"})

        with patch("brandguard.core.security.get_verifier", return_value=verifier):
            identity = current_identity(request)

        verifier.verify.assert_called_once_with("token-abc")
        assert identity.user_id == "user_1"
        assert identity.user_name == "dana@example.com"
        assert request.state.user_id == "user_1"


class TestJWTVerifier:

    def test_not_configured(self):
        with pytest.raises(HTTPException) as exc_info:
            JWTVerifier(jwks_url=None).verify("token")
        assert exc_info.value.status_code == 401

    def test_expired_token(self):
        verifier = JWTVerifier(jwks_url="https://clerk.example.com/.well-known/jwks.json")
        jwks_client = Mock()
        verifier._jwks_client = jwks_client

        with patch("brandguard.core.security.jwt.decode", side_effect=jwt.ExpiredSignatureError("expired")):
            with pytest.raises(HTTPException) as exc_info:
                verifier.verify("token")
        assert exc_info.value.detail == "Token has expired"
