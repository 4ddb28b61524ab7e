# cognito_auth/auth/credentials.py
"""
Credential derivation.

Turns a user pool session (or no session at all) into temporary AWS
credentials from the identity pool:

- federated: the session's ID token is presented under the user pool's
  provider name, and the result is tagged ``authenticated=True``;
- anonymous: no token, tagged ``authenticated=False``.

Caching of fetched credentials is left to the credentials object itself.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from cognito_auth.auth.sessions import SessionManager
from cognito_auth.core.config import AuthConfig
from cognito_auth.core.errors import (
    FederationFailedError,
    NoCurrentUserError,
    NotConfiguredError,
    SessionRetrievalFailedError,
)
from cognito_auth.schemas.auth import EssentialCredentials
from cognito_auth.services.identity_credentials import CognitoIdentityCredentials, IdentityIdCache
from cognito_auth.services.tokens import CognitoUserSession

logger = logging.getLogger(__name__)

CredentialsFactory = Callable[..., CognitoIdentityCredentials]

ESSENTIAL_FIELDS = ("access_key_id", "secret_access_key", "session_token", "identity_id", "authenticated")


def classify_fallback(exc: Exception) -> str:
    """Name the reason the authenticated path failed, for the fallback log line."""
    if isinstance(exc, (NoCurrentUserError, NotConfiguredError)):
        return "no_user"
    if isinstance(exc, SessionRetrievalFailedError):
        return "session_unavailable"
    if isinstance(exc, FederationFailedError):
        return "federation_rejected"
    return "unexpected"


def essential_credentials(credentials: Any) -> EssentialCredentials:
    """Project any credentials object (or mapping) down to the five public fields."""
    if isinstance(credentials, Mapping):
        values = {name: credentials.get(name) for name in ESSENTIAL_FIELDS}
    else:
        values = {name: getattr(credentials, name, None) for name in ESSENTIAL_FIELDS}
    values["authenticated"] = bool(values["authenticated"])
    return EssentialCredentials(**values)


class CredentialDeriver:
    def __init__(
        self,
        config: AuthConfig,
        sessions: SessionManager,
        *,
        credentials_factory: CredentialsFactory = CognitoIdentityCredentials,
        identity_cache: IdentityIdCache | None = None,
    ) -> None:
        self.config = config
        self.sessions = sessions
        self.credentials_factory = credentials_factory
        self.identity_cache = identity_cache if identity_cache is not None else IdentityIdCache()

    def session_to_credentials(self, session: CognitoUserSession) -> CognitoIdentityCredentials:
        """Build (but do not fetch) federated credentials for ``session``."""
        id_token = session.get_id_token().jwt_token
        credentials = self.credentials_factory(
            self.config.identity_pool_id,
            self.config.region,
            {self.config.logins_key: id_token},
            identity_cache=self.identity_cache,
        )
        credentials.authenticated = True
        return credentials

    def no_session_credentials(self) -> CognitoIdentityCredentials:
        """
        Build (but do not fetch) anonymous credentials.

        No identity id is passed; the provider reuses the cached one for this
        identity pool when it has it.
        """
        credentials = self.credentials_factory(
            self.config.identity_pool_id,
            self.config.region,
            None,
            identity_id=None,
            identity_cache=self.identity_cache,
        )
        credentials.authenticated = False
        return credentials

    async def current_user_credentials(self) -> CognitoIdentityCredentials:
        session = await self.sessions.current_user_session()
        credentials = self.session_to_credentials(session)
        await credentials.get()
        return credentials

    async def guest_credentials(self) -> CognitoIdentityCredentials:
        credentials = self.no_session_credentials()
        await credentials.get()
        return credentials

    async def current_credentials(self) -> CognitoIdentityCredentials:
        """
        Authenticated credentials when a session exists, guest credentials otherwise.

        Any failure on the authenticated path is logged and replaced by the guest
        path; only a failure of the guest path itself propagates.
        """
        try:
            credentials = await self.current_user_credentials()
        except Exception as exc:
            reason = classify_fallback(exc)
            log = logger.warning if reason == "unexpected" else logger.info
            log(
                "No current user credentials, loading guest credentials",
                extra={
                    "fallback_reason": reason,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )
            return await self.guest_credentials()
        return credentials
