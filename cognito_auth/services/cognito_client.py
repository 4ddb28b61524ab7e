"""
Wrapper around boto3 Cognito Identity Provider and Cognito Identity APIs.

Provides a stable, exception-friendly interface for the user pool, user handle
and federation collaborators without leaking boto3-specific errors up the stack.
Every function here is blocking; callers on the event loop go through
``asyncio.to_thread``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Mapping

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from cognito_auth.core.config import settings
from cognito_auth.core.errors import CognitoClientError, NotConfiguredError

USER_AGENT_EXTRA = "cognito-auth/0.1.0"


def _client_config() -> Config:
    return Config(
        user_agent_extra=USER_AGENT_EXTRA,
        retries={"max_attempts": settings.AWS_MAX_ATTEMPTS, "mode": "standard"},
    )


@lru_cache(maxsize=8)
def get_idp_client(region: str):
    if not region:
        raise NotConfiguredError("Cognito region is not configured")
    return boto3.client("cognito-idp", region_name=region, config=_client_config())


@lru_cache(maxsize=8)
def get_identity_client(region: str):
    if not region:
        raise NotConfiguredError("Cognito region is not configured")
    return boto3.client("cognito-identity", region_name=region, config=_client_config())


def translate_error(exc: ClientError, error_cls: type[CognitoClientError] = CognitoClientError) -> CognitoClientError:
    error = exc.response.get("Error", {})
    code = error.get("Code", "CognitoClientError")
    message = error.get("Message", str(exc))
    return error_cls(code=code, message=message)


def to_attribute_list(attributes: Mapping[str, str] | None) -> List[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in (attributes or {}).items()]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def cognito_sign_up(
    client,
    client_id: str,
    username: str,
    password: str,
    attributes: Mapping[str, str] | None = None,
    validation_data: Mapping[str, str] | None = None,
) -> dict:
    """Call Cognito SignUp API."""
    kwargs: Dict[str, Any] = {
        "ClientId": client_id,
        "Username": username,
        "Password": password,
        "UserAttributes": to_attribute_list(attributes),
    }
    if validation_data:
        kwargs["ValidationData"] = to_attribute_list(validation_data)
    try:
        return client.sign_up(**kwargs)
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_confirm_sign_up(
    client, client_id: str, username: str, code: str, force_alias_creation: bool = True
) -> dict:
    """Confirm user signup with verification code."""
    try:
        return client.confirm_sign_up(
            ClientId=client_id,
            Username=username,
            ConfirmationCode=code,
            ForceAliasCreation=force_alias_creation,
        )
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_resend_confirmation_code(client, client_id: str, username: str) -> dict:
    try:
        return client.resend_confirmation_code(ClientId=client_id, Username=username)
    except ClientError as exc:
        raise translate_error(exc) from exc


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def cognito_initiate_auth(client, client_id: str, username: str, password: str) -> dict:
    """Initiate USER_PASSWORD_AUTH flow."""
    try:
        return client.initiate_auth(
            ClientId=client_id,
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={
                "USERNAME": username,
                "PASSWORD": password,
            },
        )
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_refresh_auth(client, client_id: str, refresh_token: str) -> dict:
    """Initiate REFRESH_TOKEN_AUTH flow."""
    try:
        return client.initiate_auth(
            ClientId=client_id,
            AuthFlow="REFRESH_TOKEN_AUTH",
            AuthParameters={
                "REFRESH_TOKEN": refresh_token,
            },
        )
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_respond_to_challenge(
    client, client_id: str, session: str | None, challenge_name: str, responses: dict[str, str]
) -> dict:
    """Respond to an auth challenge (MFA, new password)."""
    kwargs: Dict[str, Any] = {
        "ClientId": client_id,
        "ChallengeName": challenge_name,
        "ChallengeResponses": responses,
    }
    if session:
        kwargs["Session"] = session
    try:
        return client.respond_to_auth_challenge(**kwargs)
    except ClientError as exc:
        raise translate_error(exc) from exc


# ---------------------------------------------------------------------------
# Attributes (access-token scoped)
# ---------------------------------------------------------------------------


def cognito_get_user(client, access_token: str) -> List[dict[str, str]]:
    """Fetch the raw user attribute list using an access token."""
    try:
        resp = client.get_user(AccessToken=access_token)
    except ClientError as exc:
        raise translate_error(exc) from exc
    return list(resp.get("UserAttributes", []))


def cognito_update_user_attributes(client, access_token: str, attributes: List[dict[str, str]]) -> dict:
    try:
        return client.update_user_attributes(AccessToken=access_token, UserAttributes=attributes)
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_get_attribute_verification_code(client, access_token: str, attribute_name: str) -> dict:
    try:
        return client.get_user_attribute_verification_code(
            AccessToken=access_token,
            AttributeName=attribute_name,
        )
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_verify_user_attribute(client, access_token: str, attribute_name: str, code: str) -> dict:
    try:
        return client.verify_user_attribute(
            AccessToken=access_token,
            AttributeName=attribute_name,
            Code=code,
        )
    except ClientError as exc:
        raise translate_error(exc) from exc


# ---------------------------------------------------------------------------
# Password recovery
# ---------------------------------------------------------------------------


def cognito_forgot_password(client, client_id: str, username: str) -> dict:
    try:
        return client.forgot_password(ClientId=client_id, Username=username)
    except ClientError as exc:
        raise translate_error(exc) from exc


def cognito_confirm_forgot_password(client, client_id: str, username: str, code: str, password: str) -> dict:
    try:
        return client.confirm_forgot_password(
            ClientId=client_id,
            Username=username,
            ConfirmationCode=code,
            Password=password,
        )
    except ClientError as exc:
        raise translate_error(exc) from exc
