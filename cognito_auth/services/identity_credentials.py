"""
Temporary AWS credentials from a Cognito identity pool.

Construction is lazy: nothing touches the network until ``get()``. ``get()``
fetches only when the credentials are missing or about to expire.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from botocore.exceptions import ClientError

from cognito_auth.core.errors import FederationFailedError, NotConfiguredError
from cognito_auth.services.cognito_client import get_identity_client, translate_error

logger = logging.getLogger(__name__)

# Refresh a little before the advertised expiry.
EXPIRY_WINDOW = timedelta(seconds=15)

# Errors that mean a cached identity id no longer resolves and a new one is needed.
STALE_IDENTITY_CODES = {"ResourceNotFoundException", "NotAuthorizedException"}


class IdentityIdCache:
    """Remembers the identity id issued per identity pool, so guests keep one identity."""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def get(self, identity_pool_id: str) -> Optional[str]:
        return self._ids.get(identity_pool_id)

    def set(self, identity_pool_id: str, identity_id: str) -> None:
        self._ids[identity_pool_id] = identity_id

    def clear(self, identity_pool_id: str) -> None:
        self._ids.pop(identity_pool_id, None)


class CognitoIdentityCredentials:
    def __init__(
        self,
        identity_pool_id: str | None,
        region: str | None,
        logins: Mapping[str, str] | None = None,
        *,
        identity_id: str | None = None,
        client=None,
        identity_cache: IdentityIdCache | None = None,
    ) -> None:
        self.identity_pool_id = identity_pool_id
        self.region = region
        self.logins = dict(logins or {})
        self.identity_id = identity_id
        self.identity_cache = identity_cache if identity_cache is not None else IdentityIdCache()

        self.access_key_id: str | None = None
        self.secret_access_key: str | None = None
        self.session_token: str | None = None
        self.expire_time: datetime | None = None
        self.authenticated = False
        self._client = client

    def __repr__(self) -> str:
        return (
            f"CognitoIdentityCredentials(identity_pool_id={self.identity_pool_id!r}, "
            f"identity_id={self.identity_id!r}, authenticated={self.authenticated!r})"
        )

    @property
    def client(self):
        if self._client is None:
            self._client = get_identity_client(self.region or "")
        return self._client

    def needs_refresh(self, now: datetime | None = None) -> bool:
        if not self.access_key_id or self.expire_time is None:
            return True
        current = now or datetime.now(timezone.utc)
        return current >= self.expire_time - EXPIRY_WINDOW

    async def get(self) -> "CognitoIdentityCredentials":
        """
        Resolve the credentials, fetching them if needed.

        Raises:
            NotConfiguredError: no identity pool id.
            FederationFailedError: the identity pool rejected the exchange.
        """
        if self.needs_refresh():
            await self.refresh()
        return self

    async def refresh(self) -> None:
        if not self.identity_pool_id:
            raise NotConfiguredError("Identity pool id is not configured")
        await asyncio.to_thread(self._fetch)

    def _fetch(self) -> None:
        from_cache = False
        if not self.identity_id:
            self.identity_id = self.identity_cache.get(self.identity_pool_id)
            from_cache = bool(self.identity_id)

        try:
            self._fetch_credentials()
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if not (from_cache and code in STALE_IDENTITY_CODES):
                raise translate_error(exc, FederationFailedError) from exc
            logger.info("Cached identity id rejected (%s); requesting a new one", code)
            self.identity_cache.clear(self.identity_pool_id)
            self.identity_id = None
            try:
                self._fetch_credentials()
            except ClientError as retry_exc:
                raise translate_error(retry_exc, FederationFailedError) from retry_exc

    def _fetch_credentials(self) -> None:
        if not self.identity_id:
            kwargs = {"IdentityPoolId": self.identity_pool_id}
            if self.logins:
                kwargs["Logins"] = self.logins
            self.identity_id = self.client.get_id(**kwargs)["IdentityId"]

        kwargs = {"IdentityId": self.identity_id}
        if self.logins:
            kwargs["Logins"] = self.logins
        resp = self.client.get_credentials_for_identity(**kwargs)

        credentials = resp.get("Credentials") or {}
        self.identity_id = resp.get("IdentityId") or self.identity_id
        self.access_key_id = credentials.get("AccessKeyId")
        self.secret_access_key = credentials.get("SecretKey")
        self.session_token = credentials.get("SessionToken")
        expiration = credentials.get("Expiration")
        if isinstance(expiration, datetime) and expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        self.expire_time = expiration
        self.identity_cache.set(self.identity_pool_id, self.identity_id)
