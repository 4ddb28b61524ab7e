# cognito_auth/auth/challenges.py
"""
Sign-in challenge state machine.

Drives a user handle from password verification through optional MFA and an
optional forced password change:

    AWAITING_PASSWORD     -> AUTHENTICATED | MFA_REQUIRED | NEW_PASSWORD_REQUIRED | FAILED
    MFA_REQUIRED          -> AUTHENTICATED | FAILED
    NEW_PASSWORD_REQUIRED -> AUTHENTICATED | MFA_REQUIRED | FAILED

The outstanding challenge is recorded on ``user.challenge``; reaching
AUTHENTICATED clears it. Side effects (credential refresh, events) belong to
the facade, not to this module.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping

from cognito_auth.core.errors import (
    AuthenticationFailedError,
    CognitoClientError,
    InvalidInputError,
    NotConfiguredError,
)
from cognito_auth.services.user_pool import (
    AuthResult,
    Authenticated,
    CognitoUser,
    CognitoUserPool,
    Failed,
    MFARequired,
    NewPasswordRequired,
)

logger = logging.getLogger(__name__)


class SignInState(str, Enum):
    AWAITING_PASSWORD = "AWAITING_PASSWORD"
    MFA_REQUIRED = "MFA_REQUIRED"
    NEW_PASSWORD_REQUIRED = "NEW_PASSWORD_REQUIRED"
    AUTHENTICATED = "AUTHENTICATED"
    FAILED = "FAILED"


TRANSITIONS: dict[SignInState, frozenset[SignInState]] = {
    SignInState.AWAITING_PASSWORD: frozenset(
        {
            SignInState.AUTHENTICATED,
            SignInState.MFA_REQUIRED,
            SignInState.NEW_PASSWORD_REQUIRED,
            SignInState.FAILED,
        }
    ),
    SignInState.MFA_REQUIRED: frozenset({SignInState.AUTHENTICATED, SignInState.FAILED}),
    SignInState.NEW_PASSWORD_REQUIRED: frozenset(
        {SignInState.AUTHENTICATED, SignInState.MFA_REQUIRED, SignInState.FAILED}
    ),
}


def state_of(result: AuthResult) -> SignInState:
    if isinstance(result, Authenticated):
        return SignInState.AUTHENTICATED
    if isinstance(result, MFARequired):
        return SignInState.MFA_REQUIRED
    if isinstance(result, NewPasswordRequired):
        return SignInState.NEW_PASSWORD_REQUIRED
    return SignInState.FAILED


def require_value(value: str | None, message: str) -> str:
    if not value:
        raise InvalidInputError(message)
    return value


class ChallengeFlow:
    def __init__(self, pool: CognitoUserPool | None) -> None:
        self.pool = pool

    def _require_pool(self) -> CognitoUserPool:
        if self.pool is None:
            raise NotConfiguredError("No userPool")
        return self.pool

    async def sign_in(self, username: str, password: str) -> CognitoUser:
        """
        Verify a username/password pair.

        Returns the user handle; ``user.challenge`` is None when fully
        authenticated, otherwise the pending ``MFARequired`` or
        ``NewPasswordRequired``.

        Raises:
            NotConfiguredError: no user pool is configured.
            InvalidInputError: empty username or password.
            AuthenticationFailedError: Cognito rejected the attempt.
        """
        pool = self._require_pool()
        require_value(username, "Username cannot be empty")
        require_value(password, "Password cannot be empty")

        user = pool.user(username)
        result = await user.authenticate_user(password)
        return self._advance(user, SignInState.AWAITING_PASSWORD, result, operation="signIn")

    async def confirm_sign_in(self, user: CognitoUser, code: str) -> CognitoUser:
        """Answer an outstanding MFA challenge with ``code``."""
        require_value(code, "Code cannot be empty")

        result = await user.send_mfa_code(code)
        return self._advance(user, SignInState.MFA_REQUIRED, result, operation="confirmSignIn")

    async def complete_new_password(
        self,
        user: CognitoUser,
        new_password: str,
        required_attributes: Mapping[str, str] | None = None,
    ) -> CognitoUser:
        """Answer a NEW_PASSWORD_REQUIRED challenge; Cognito may follow up with MFA."""
        require_value(new_password, "Password cannot be empty")

        result = await user.complete_new_password_challenge(new_password, required_attributes or {})
        return self._advance(user, SignInState.NEW_PASSWORD_REQUIRED, result, operation="completeNewPassword")

    def _advance(
        self,
        user: CognitoUser,
        source: SignInState,
        result: AuthResult,
        *,
        operation: str,
    ) -> CognitoUser:
        target = state_of(result)
        if target not in TRANSITIONS[source]:
            result = Failed(
                CognitoClientError(
                    code="UnexpectedChallengeException",
                    message=f"{operation} cannot move from {source.value} to {target.value}",
                )
            )
            target = SignInState.FAILED

        if isinstance(result, Failed):
            error = result.error
            logger.error("%s failure (code=%s): %s", operation, error.code, error.message)
            raise AuthenticationFailedError(code=error.code, message=error.message) from error

        if target is SignInState.AUTHENTICATED:
            user.challenge = None
        else:
            user.challenge = result

        logger.debug("%s for %s: %s -> %s", operation, user.username, source.value, target.value)
        return user
