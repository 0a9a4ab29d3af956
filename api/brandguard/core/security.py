from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, Request, status
from jwt import PyJWKClient

from .config import settings

logger = logging.getLogger(__name__)

USER_NAME_HEADER = "X-User-Name"
MAX_USER_NAME_LENGTH = 100


@dataclass
class Identity:
    """Who is calling. `user_name` is stamped on the reports they create."""
    user_id: Optional[str] = None
    user_name: Optional[str] = None


class JWTVerifier:
    """Verifies Clerk session tokens (RS256) against the instance JWKS."""

    def __init__(self, jwks_url: Optional[str] = None, audience: Optional[str] = None):
        self.jwks_url = jwks_url or settings.clerk_jwks_url
        self.audience = audience
        self._jwks_client: Optional[PyJWKClient] = None
        self._jwks_cache_time = 300  # 5 minutes cache

    def _get_jwks_client(self) -> PyJWKClient:
        if not self.jwks_url:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="JWT verification not configured"
            )
        if not self._jwks_client:
            self._jwks_client = PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self._jwks_cache_time)
        return self._jwks_client

    def verify(self, token: str) -> Dict[str, Any]:
        """Validate signature, expiry and (optionally) audience; return the claims."""
        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing authentication token")
        try:
            signing_key = self._get_jwks_client().get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"verify_signature": True, "verify_exp": True, "verify_aud": bool(self.audience)},
                audience=self.audience,
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
        except jwt.PyJWKClientError as e:
            logger.error(f"JWKS lookup failed: {e}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token verification failed")
        except jwt.InvalidTokenError as e:
            logger.warning(f"JWT validation failed: {e}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


_verifier: Optional[JWTVerifier] = None


def get_verifier() -> JWTVerifier:
    global _verifier
    if _verifier is None:
        _verifier = JWTVerifier()
    return _verifier


def _clean_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = " ".join(value.split())
    return value[:MAX_USER_NAME_LENGTH] or None


def _name_from_claims(claims: Dict[str, Any]) -> Optional[str]:
    for key in ("name", "full_name", "username", "email", "sub"):
        if claims.get(key):
            return _clean_name(str(claims[key]))
    return None


def current_identity(request: Request) -> Identity:
    """FastAPI dependency resolving the caller.

    With in-app auth enabled a valid Clerk bearer token is required;
    otherwise the display name comes from the `X-User-Name` header.
    """
    if settings.enable_inapp_auth:
        auth = request.headers.get("Authorization", "")
        if not auth.lower().startswith("bearer "):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
        claims = get_verifier().verify(auth.split(" ", 1)[1].strip())
        identity = Identity(user_id=claims.get("sub"), user_name=_name_from_claims(claims))
        request.state.user_id = identity.user_id
        return identity

    return Identity(user_name=_clean_name(request.headers.get(USER_NAME_HEADER)))
