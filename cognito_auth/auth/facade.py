# cognito_auth/auth/facade.py
"""
Public auth facade.

Orchestrates the sign-in state machine, session lookup and credential
derivation, and broadcasts credential changes and lifecycle events through an
injected dispatcher. Credential refreshes after sign-in/sign-out run as
detached tasks: their outcome is visible only on the ``credentials`` channel
and their failures are logged, never raised.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Mapping

from cognito_auth.auth.challenges import ChallengeFlow, require_value
from cognito_auth.auth.credentials import CredentialDeriver, CredentialsFactory, essential_credentials
from cognito_auth.auth.sessions import SessionManager
from cognito_auth.core.config import AuthConfig
from cognito_auth.core.errors import AuthenticationFailedError, AuthError, NotConfiguredError
from cognito_auth.core.events import AUTH_CHANNEL, CREDENTIALS_CHANNEL, EventDispatcher, Hub
from cognito_auth.schemas.auth import (
    CodeDeliveryDetails,
    EssentialCredentials,
    SignUpRequest,
    SignUpResult,
    UserInfo,
    VerifiedContact,
)
from cognito_auth.services.identity_credentials import CognitoIdentityCredentials, IdentityIdCache
from cognito_auth.services.tokens import CognitoUserSession
from cognito_auth.services.user_pool import CognitoUser, CognitoUserPool, MemoryStorage

logger = logging.getLogger(__name__)

EVENT_SOURCE = "Auth"

PoolFactory = Callable[[AuthConfig, MemoryStorage], CognitoUserPool]


def attributes_to_dict(attributes: list[dict[str, str]] | None) -> dict[str, Any]:
    """Flatten Cognito's Name/Value list, dropping ``sub`` and decoding boolean strings."""
    out: dict[str, Any] = {}
    for attribute in attributes or []:
        name = attribute.get("Name")
        if not name or name == "sub":
            continue
        value = attribute.get("Value")
        if value == "true":
            out[name] = True
        elif value == "false":
            out[name] = False
        else:
            out[name] = value
    return out


class Auth:
    def __init__(
        self,
        config: AuthConfig | Mapping[str, Any] | None = None,
        *,
        dispatcher: EventDispatcher | None = None,
        pool_factory: PoolFactory | None = None,
        credentials_factory: CredentialsFactory = CognitoIdentityCredentials,
        storage: MemoryStorage | None = None,
        identity_cache: IdentityIdCache | None = None,
    ) -> None:
        self.dispatcher = dispatcher if dispatcher is not None else Hub()
        self._pool_factory = pool_factory or CognitoUserPool.from_config
        self._credentials_factory = credentials_factory
        self._storage = storage if storage is not None else MemoryStorage()
        self._identity_cache = identity_cache if identity_cache is not None else IdentityIdCache()
        self._background: set[asyncio.Task[Any]] = set()

        self._config = AuthConfig()
        self.user_pool: CognitoUserPool | None = None
        self.configure(config if config is not None else AuthConfig.from_settings())

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> AuthConfig:
        return self._config

    def configure(self, config: AuthConfig | Mapping[str, Any] | None) -> AuthConfig:
        """
        Apply ``config`` over the current configuration and rebuild the pool.

        Must not race with in-flight operations; callers serialize it.
        """
        incoming = config if isinstance(config, AuthConfig) else AuthConfig.from_mapping(config)
        self._config = self._config.merged_with(incoming)
        logger.debug("configure Auth: %s", self._config)

        self.user_pool = self._pool_factory(self._config, self._storage) if self._config.has_user_pool else None
        self._sessions = SessionManager(self.user_pool)
        self._challenges = ChallengeFlow(self.user_pool)
        self._credentials = CredentialDeriver(
            self._config,
            self._sessions,
            credentials_factory=self._credentials_factory,
            identity_cache=self._identity_cache,
        )
        self._dispatch_auth_event("configured", None)
        return self._config

    def _require_pool(self) -> CognitoUserPool:
        if self.user_pool is None:
            raise NotConfiguredError("No userPool")
        return self.user_pool

    # ------------------------------------------------------------------
    # Events / detached work
    # ------------------------------------------------------------------

    def _dispatch_auth_event(self, event: str, data: Any) -> None:
        self.dispatcher.dispatch(AUTH_CHANNEL, {"event": event, "data": data}, EVENT_SOURCE)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _refresh_and_broadcast_credentials(self) -> None:
        try:
            credentials = await self.current_credentials()
            self.dispatcher.dispatch(CREDENTIALS_CHANNEL, self.essential_credentials(credentials), EVENT_SOURCE)
        except Exception:
            logger.exception("get credentials failed", extra={"event": "credentials_refresh"})

    async def drain(self) -> None:
        """Wait for every detached credential refresh to finish."""
        while self._background:
            await asyncio.gather(*tuple(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def sign_up(self, request: SignUpRequest) -> SignUpResult:
        pool = self._require_pool()
        require_value(request.username, "Username cannot be empty")
        require_value(request.password, "Password cannot be empty")

        logger.debug("signUp attrs: %s", list(request.attributes))
        result = await pool.sign_up(
            request.username,
            request.password,
            request.attributes,
            request.validation_data,
        )
        self._dispatch_auth_event("signUp", result)
        return result

    async def confirm_sign_up(self, username: str, code: str, *, force_alias_creation: bool = True) -> dict:
        pool = self._require_pool()
        require_value(username, "Username cannot be empty")
        require_value(code, "Code cannot be empty")
        return await pool.user(username).confirm_registration(code, force_alias_creation)

    async def resend_sign_up(self, username: str) -> CodeDeliveryDetails | None:
        pool = self._require_pool()
        require_value(username, "Username cannot be empty")
        return await pool.user(username).resend_confirmation_code()

    # ------------------------------------------------------------------
    # Sign in / out
    # ------------------------------------------------------------------

    async def sign_in(self, username: str, password: str) -> CognitoUser:
        """
        Sign in with a username and password.

        The returned handle has ``challenge`` set when MFA or a new password is
        still required. Credentials are refreshed in the background only once
        fully authenticated; do not assume they are ready when this returns.
        """
        try:
            user = await self._challenges.sign_in(username, password)
        except AuthenticationFailedError as exc:
            self._dispatch_auth_event("signIn_failure", exc)
            raise

        if user.challenge is None:
            self._spawn(self._refresh_and_broadcast_credentials())
            self._dispatch_auth_event("signIn", user)
        else:
            logger.debug("signIn challenge: %s", type(user.challenge).__name__)
        return user

    async def confirm_sign_in(self, user: CognitoUser, code: str) -> CognitoUser:
        try:
            user = await self._challenges.confirm_sign_in(user, code)
        except AuthenticationFailedError as exc:
            self._dispatch_auth_event("signIn_failure", exc)
            raise

        self._spawn(self._refresh_and_broadcast_credentials())
        self._dispatch_auth_event("signIn", user)
        return user

    async def complete_new_password(
        self,
        user: CognitoUser,
        password: str,
        required_attributes: Mapping[str, str] | None = None,
    ) -> CognitoUser:
        # Unlike sign_in/confirm_sign_in, success here does not refresh credentials.
        try:
            user = await self._challenges.complete_new_password(user, password, required_attributes)
        except AuthenticationFailedError as exc:
            self._dispatch_auth_event("signIn_failure", exc)
            raise

        if user.challenge is None:
            self._dispatch_auth_event("signIn", user)
        return user

    async def sign_out(self) -> None:
        pool = self._require_pool()
        user = pool.get_current_user()
        if user is None:
            return

        user.sign_out()
        self._spawn(self._refresh_and_broadcast_credentials())
        self._dispatch_auth_event("signOut", user)

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    async def forgot_password(self, username: str) -> CodeDeliveryDetails | None:
        pool = self._require_pool()
        require_value(username, "Username cannot be empty")
        try:
            return await pool.user(username).forgot_password()
        except AuthError as exc:
            logger.error("forgotPassword failure: %s", exc)
            raise

    async def forgot_password_submit(self, username: str, code: str, password: str) -> None:
        pool = self._require_pool()
        require_value(username, "Username cannot be empty")
        require_value(code, "Code cannot be empty")
        require_value(password, "Password cannot be empty")
        await pool.user(username).confirm_password(code, password)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    async def user_attributes(self, user: CognitoUser) -> dict[str, Any]:
        await self.user_session(user)
        return attributes_to_dict(await user.get_user_attributes())

    async def update_user_attributes(self, user: CognitoUser, attributes: Mapping[str, Any]) -> dict:
        await self.user_session(user)
        attribute_list = [
            {"Name": name, "Value": str(value)}
            for name, value in attributes.items()
            if name != "sub" and "_verified" not in name and value
        ]
        return await user.update_attributes(attribute_list)

    async def verified_contact(self, user: CognitoUser) -> VerifiedContact:
        attributes = await self.user_attributes(user)
        contact = VerifiedContact()
        for name in ("email", "phone_number"):
            value = attributes.get(name)
            if not value:
                continue
            if attributes.get(f"{name}_verified"):
                contact.verified[name] = value
            else:
                contact.unverified[name] = value
        return contact

    async def verify_user_attribute(self, user: CognitoUser, attribute: str) -> CodeDeliveryDetails | None:
        return await user.get_attribute_verification_code(attribute)

    async def verify_user_attribute_submit(self, user: CognitoUser, attribute: str, code: str) -> dict:
        require_value(code, "Code cannot be empty")
        return await user.verify_attribute(attribute, code)

    async def verify_current_user_attribute(self, attribute: str) -> CodeDeliveryDetails | None:
        user = await self.current_authenticated_user()
        return await self.verify_user_attribute(user, attribute)

    async def verify_current_user_attribute_submit(self, attribute: str, code: str) -> dict:
        require_value(code, "Code cannot be empty")
        user = await self.current_authenticated_user()
        return await self.verify_user_attribute_submit(user, attribute, code)

    # ------------------------------------------------------------------
    # Current user / session
    # ------------------------------------------------------------------

    async def current_user(self) -> CognitoUser:
        return await self._sessions.current_user()

    async def current_authenticated_user(self) -> CognitoUser:
        return await self._sessions.current_authenticated_user()

    async def current_user_session(self) -> CognitoUserSession:
        return await self._sessions.current_user_session()

    async def current_session(self) -> CognitoUserSession:
        return await self._sessions.current_session()

    async def user_session(self, user: CognitoUser) -> CognitoUserSession:
        return await self._sessions.user_session(user)

    async def current_user_info(self) -> UserInfo | None:
        try:
            user = await self.current_authenticated_user()
        except Exception as exc:
            logger.debug("currentUserInfo: no authenticated user (%s)", exc)
            return None

        attributes, credentials = await asyncio.gather(
            self.user_attributes(user),
            self.current_user_credentials(),
            return_exceptions=True,
        )
        if isinstance(attributes, BaseException) or isinstance(credentials, BaseException):
            error = attributes if isinstance(attributes, BaseException) else credentials
            logger.debug("currentUserInfo error: %s", error)
            attributes, identity_id = {}, None
        else:
            identity_id = credentials.identity_id

        info = UserInfo(username=user.username, id=identity_id, attributes=attributes)
        logger.debug("user info: %s", info.username)
        return info

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def current_user_credentials(self) -> CognitoIdentityCredentials:
        return await self._credentials.current_user_credentials()

    async def guest_credentials(self) -> CognitoIdentityCredentials:
        return await self._credentials.guest_credentials()

    async def current_credentials(self) -> CognitoIdentityCredentials:
        return await self._credentials.current_credentials()

    def session_to_credentials(self, session: CognitoUserSession) -> CognitoIdentityCredentials:
        return self._credentials.session_to_credentials(session)

    def no_session_credentials(self) -> CognitoIdentityCredentials:
        return self._credentials.no_session_credentials()

    def essential_credentials(self, credentials: Any) -> EssentialCredentials:
        return essential_credentials(credentials)
