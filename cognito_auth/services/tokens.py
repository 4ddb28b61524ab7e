"""
Cognito user pool tokens and the session that bundles them.

Tokens are decoded WITHOUT signature verification: the claims are read only
to learn expiry and identity, never to make authorization decisions.
"""
from __future__ import annotations

import time
from typing import Any

from jose import JWTError, jwt


class CognitoJwtToken:
    def __init__(self, token: str) -> None:
        self.jwt_token = token
        self.payload = self._decode(token)

    @staticmethod
    def _decode(token: str) -> dict[str, Any]:
        if not token:
            return {}
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return {}

    @property
    def expiration(self) -> int:
        return int(self.payload.get("exp") or 0)


class CognitoRefreshToken:
    def __init__(self, token: str | None) -> None:
        self.token = token or ""

    def __bool__(self) -> bool:
        return bool(self.token)


class CognitoUserSession:
    """
    Proof of a completed authentication.

    Only ever built from an ``AuthenticationResult``, i.e. after every
    challenge has been satisfied.
    """

    def __init__(self, id_token: str, access_token: str, refresh_token: str | None = None) -> None:
        self.id_token = CognitoJwtToken(id_token)
        self.access_token = CognitoJwtToken(access_token)
        self.refresh_token = CognitoRefreshToken(refresh_token)

    @classmethod
    def from_authentication_result(
        cls, authentication: dict, *, fallback_refresh: str | None = None
    ) -> "CognitoUserSession":
        return cls(
            id_token=authentication.get("IdToken") or "",
            access_token=authentication.get("AccessToken") or "",
            refresh_token=authentication.get("RefreshToken") or fallback_refresh,
        )

    def get_id_token(self) -> CognitoJwtToken:
        return self.id_token

    def get_access_token(self) -> CognitoJwtToken:
        return self.access_token

    def is_valid(self, now: float | None = None) -> bool:
        now_ts = int(now if now is not None else time.time())
        return now_ts < self.access_token.expiration and now_ts < self.id_token.expiration
