"""
boto3-backed Cognito user pool and user handle.

``CognitoUserPool`` owns the ``cognito-idp`` client and the token storage;
``CognitoUser`` is a reference to one principal in that pool. Authentication
calls return a single ``AuthResult`` variant instead of a record of callbacks.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from cognito_auth.core.config import AuthConfig
from cognito_auth.core.errors import CognitoClientError, NotConfiguredError, SessionRetrievalFailedError
from cognito_auth.schemas.auth import CodeDeliveryDetails, SignUpResult
from cognito_auth.services.cognito_client import (
    cognito_confirm_forgot_password,
    cognito_confirm_sign_up,
    cognito_forgot_password,
    cognito_get_attribute_verification_code,
    cognito_get_user,
    cognito_initiate_auth,
    cognito_refresh_auth,
    cognito_resend_confirmation_code,
    cognito_respond_to_challenge,
    cognito_sign_up,
    cognito_update_user_attributes,
    cognito_verify_user_attribute,
    get_idp_client,
)
from cognito_auth.services.tokens import CognitoUserSession

logger = logging.getLogger(__name__)

MFA_CHALLENGES = {"SMS_MFA", "SOFTWARE_TOKEN_MFA"}
NEW_PASSWORD_CHALLENGE = "NEW_PASSWORD_REQUIRED"
MFA_CODE_RESPONSE_KEYS = {
    "SMS_MFA": "SMS_MFA_CODE",
    "SOFTWARE_TOKEN_MFA": "SOFTWARE_TOKEN_MFA_CODE",
}
STORAGE_PREFIX = "CognitoIdentityServiceProvider"


# ---------------------------------------------------------------------------
# Auth results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Authenticated:
    session: CognitoUserSession


@dataclass(frozen=True)
class MFARequired:
    challenge_name: str
    challenge_parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NewPasswordRequired:
    user_attributes: dict[str, Any] = field(default_factory=dict)
    required_attributes: list[str] = field(default_factory=list)

    challenge_name = NEW_PASSWORD_CHALLENGE


@dataclass(frozen=True)
class Failed:
    error: CognitoClientError


AuthResult = Union[Authenticated, MFARequired, NewPasswordRequired, Failed]
Challenge = Union[MFARequired, NewPasswordRequired]


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class MemoryStorage:
    """In-process key/value store with a Web Storage-style interface."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------


class CognitoUserPool:
    def __init__(
        self,
        user_pool_id: str,
        client_id: str,
        *,
        client=None,
        storage: MemoryStorage | None = None,
    ) -> None:
        if not user_pool_id or "_" not in user_pool_id:
            raise NotConfiguredError(f"Invalid user pool id: {user_pool_id!r}")
        if not client_id:
            raise NotConfiguredError("User pool web client id is not configured")
        self.user_pool_id = user_pool_id
        self.client_id = client_id
        self.region = user_pool_id.split("_", 1)[0]
        self.storage = storage if storage is not None else MemoryStorage()
        self._client = client

    @classmethod
    def from_config(cls, config: AuthConfig, storage: MemoryStorage | None = None) -> "CognitoUserPool":
        return cls(
            config.user_pool_id or "",
            config.user_pool_web_client_id or "",
            storage=storage,
        )

    @property
    def client(self):
        if self._client is None:
            self._client = get_idp_client(self.region)
        return self._client

    @property
    def last_user_key(self) -> str:
        return f"{STORAGE_PREFIX}.{self.client_id}.LastAuthUser"

    def user(self, username: str) -> "CognitoUser":
        return CognitoUser(username, self)

    def get_current_user(self) -> Optional["CognitoUser"]:
        username = self.storage.get_item(self.last_user_key)
        if not username:
            return None
        return CognitoUser(username, self)

    async def sign_up(
        self,
        username: str,
        password: str,
        attributes: Mapping[str, str] | None = None,
        validation_data: Mapping[str, str] | None = None,
    ) -> SignUpResult:
        resp = await asyncio.to_thread(
            cognito_sign_up,
            self.client,
            self.client_id,
            username,
            password,
            attributes,
            validation_data,
        )
        return SignUpResult(
            user=CognitoUser(username, self),
            user_confirmed=bool(resp.get("UserConfirmed")),
            user_sub=resp.get("UserSub"),
            code_delivery_details=CodeDeliveryDetails.from_response(resp),
        )


# ---------------------------------------------------------------------------
# User handle
# ---------------------------------------------------------------------------


class CognitoUser:
    def __init__(self, username: str, pool: CognitoUserPool) -> None:
        self.username = username
        self.pool = pool
        # Set by the sign-in state machine; at most one outstanding challenge.
        self.challenge: Challenge | None = None
        self._challenge_name: str | None = None
        self._challenge_session: str | None = None
        self._session: CognitoUserSession | None = None

    def __repr__(self) -> str:
        return f"CognitoUser(username={self.username!r}, challenge={self.challenge!r})"

    @property
    def client(self):
        return self.pool.client

    @property
    def client_id(self) -> str:
        return self.pool.client_id

    def _key(self, suffix: str) -> str:
        return f"{STORAGE_PREFIX}.{self.client_id}.{self.username}.{suffix}"

    # ----------------------------
    # Token cache
    # ----------------------------

    def _cache_tokens(self) -> None:
        session = self._session
        if session is None:
            return
        storage = self.pool.storage
        storage.set_item(self._key("idToken"), session.get_id_token().jwt_token)
        storage.set_item(self._key("accessToken"), session.get_access_token().jwt_token)
        if session.refresh_token:
            storage.set_item(self._key("refreshToken"), session.refresh_token.token)
        storage.set_item(self.pool.last_user_key, self.username)

    def _load_cached_session(self) -> CognitoUserSession | None:
        storage = self.pool.storage
        id_token = storage.get_item(self._key("idToken"))
        access_token = storage.get_item(self._key("accessToken"))
        if not id_token or not access_token:
            return None
        return CognitoUserSession(id_token, access_token, storage.get_item(self._key("refreshToken")))

    def _clear_cached_tokens(self) -> None:
        storage = self.pool.storage
        for suffix in ("idToken", "accessToken", "refreshToken"):
            storage.remove_item(self._key(suffix))
        storage.remove_item(self.pool.last_user_key)

    # ----------------------------
    # Authentication
    # ----------------------------

    def _handle_auth_response(self, resp: dict) -> AuthResult:
        authentication = resp.get("AuthenticationResult")
        if authentication:
            self._challenge_name = None
            self._challenge_session = None
            self._session = CognitoUserSession.from_authentication_result(authentication)
            self._cache_tokens()
            return Authenticated(self._session)

        challenge_name = resp.get("ChallengeName")
        params = dict(resp.get("ChallengeParameters") or {})
        self._challenge_name = challenge_name
        self._challenge_session = resp.get("Session")

        if challenge_name in MFA_CHALLENGES:
            return MFARequired(challenge_name=challenge_name, challenge_parameters=params)

        if challenge_name == NEW_PASSWORD_CHALLENGE:
            user_attributes = json.loads(params.get("userAttributes") or "{}")
            # Verification flags are read-only and rejected if sent back.
            user_attributes.pop("email_verified", None)
            user_attributes.pop("phone_number_verified", None)
            required = [
                name.removeprefix("userAttributes.")
                for name in json.loads(params.get("requiredAttributes") or "[]")
            ]
            return NewPasswordRequired(user_attributes=user_attributes, required_attributes=required)

        return Failed(
            CognitoClientError(
                code="UnsupportedChallengeException",
                message=f"Unsupported authentication challenge: {challenge_name or 'UNKNOWN'}",
            )
        )

    async def authenticate_user(self, password: str) -> AuthResult:
        try:
            resp = await asyncio.to_thread(cognito_initiate_auth, self.client, self.client_id, self.username, password)
        except CognitoClientError as exc:
            return Failed(exc)
        # With alias sign-in, Cognito reports the canonical username here.
        self.username = (resp.get("ChallengeParameters") or {}).get("USER_ID_FOR_SRP", self.username)
        return self._handle_auth_response(resp)

    async def send_mfa_code(self, code: str) -> AuthResult:
        challenge_name = self._challenge_name or "SMS_MFA"
        responses = {
            "USERNAME": self.username,
            MFA_CODE_RESPONSE_KEYS.get(challenge_name, "SMS_MFA_CODE"): code,
        }
        try:
            resp = await asyncio.to_thread(
                cognito_respond_to_challenge,
                self.client,
                self.client_id,
                self._challenge_session,
                challenge_name,
                responses,
            )
        except CognitoClientError as exc:
            return Failed(exc)
        return self._handle_auth_response(resp)

    async def complete_new_password_challenge(
        self, new_password: str, required_attributes: Mapping[str, str] | None = None
    ) -> AuthResult:
        responses = {"USERNAME": self.username, "NEW_PASSWORD": new_password}
        for name, value in (required_attributes or {}).items():
            responses[f"userAttributes.{name}"] = value
        try:
            resp = await asyncio.to_thread(
                cognito_respond_to_challenge,
                self.client,
                self.client_id,
                self._challenge_session,
                NEW_PASSWORD_CHALLENGE,
                responses,
            )
        except CognitoClientError as exc:
            return Failed(exc)
        return self._handle_auth_response(resp)

    # ----------------------------
    # Session
    # ----------------------------

    async def get_session(self) -> CognitoUserSession:
        """
        Return a valid session, refreshing it with the refresh token if expired.

        Raises:
            SessionRetrievalFailedError: no cached session, or the refresh was rejected.
        """
        if self._session is None:
            self._session = self._load_cached_session()

        if self._session is not None and self._session.is_valid():
            return self._session

        refresh_token = self._session.refresh_token.token if self._session else ""
        if not refresh_token:
            raise SessionRetrievalFailedError(
                code="NoValidSessionException",
                message="Local session is missing or expired. Please authenticate.",
            )

        logger.debug("Refreshing Cognito session for %s", self.username)
        try:
            resp = await asyncio.to_thread(cognito_refresh_auth, self.client, self.client_id, refresh_token)
        except CognitoClientError as exc:
            raise SessionRetrievalFailedError(code=exc.code, message=exc.message) from exc

        authentication = resp.get("AuthenticationResult") or {}
        self._session = CognitoUserSession.from_authentication_result(authentication, fallback_refresh=refresh_token)
        self._cache_tokens()
        return self._session

    def sign_out(self) -> None:
        """Forget the local session. Tokens already issued stay valid until they expire."""
        self._session = None
        self.challenge = None
        self._challenge_name = None
        self._challenge_session = None
        self._clear_cached_tokens()

    # ----------------------------
    # Attributes
    # ----------------------------

    async def _access_token(self) -> str:
        session = await self.get_session()
        return session.get_access_token().jwt_token

    async def get_user_attributes(self) -> list[dict[str, str]]:
        access_token = await self._access_token()
        return await asyncio.to_thread(cognito_get_user, self.client, access_token)

    async def update_attributes(self, attributes: list[dict[str, str]]) -> dict:
        access_token = await self._access_token()
        return await asyncio.to_thread(cognito_update_user_attributes, self.client, access_token, attributes)

    async def get_attribute_verification_code(self, attribute_name: str) -> Optional[CodeDeliveryDetails]:
        access_token = await self._access_token()
        resp = await asyncio.to_thread(
            cognito_get_attribute_verification_code, self.client, access_token, attribute_name
        )
        return CodeDeliveryDetails.from_response(resp)

    async def verify_attribute(self, attribute_name: str, code: str) -> dict:
        access_token = await self._access_token()
        return await asyncio.to_thread(cognito_verify_user_attribute, self.client, access_token, attribute_name, code)

    # ----------------------------
    # Registration / recovery
    # ----------------------------

    async def confirm_registration(self, code: str, force_alias_creation: bool = True) -> dict:
        return await asyncio.to_thread(
            cognito_confirm_sign_up, self.client, self.client_id, self.username, code, force_alias_creation
        )

    async def resend_confirmation_code(self) -> Optional[CodeDeliveryDetails]:
        resp = await asyncio.to_thread(cognito_resend_confirmation_code, self.client, self.client_id, self.username)
        return CodeDeliveryDetails.from_response(resp)

    async def forgot_password(self) -> Optional[CodeDeliveryDetails]:
        resp = await asyncio.to_thread(cognito_forgot_password, self.client, self.client_id, self.username)
        return CodeDeliveryDetails.from_response(resp)

    async def confirm_password(self, code: str, new_password: str) -> None:
        await asyncio.to_thread(
            cognito_confirm_forgot_password, self.client, self.client_id, self.username, code, new_password
        )
