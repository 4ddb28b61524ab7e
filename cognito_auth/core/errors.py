# cognito_auth/core/errors.py
"""
Error taxonomy for the auth facade.

Validation and configuration errors are raised before any network call.
Errors that originate at Cognito keep the provider's code and message and
chain the underlying botocore exception.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base exception for every failure surfaced by the auth facade."""

    pass


class NotConfiguredError(AuthError):
    """Raised when no user pool (or identity pool) is configured."""

    pass


class InvalidInputError(AuthError):
    """Raised when a required string argument is missing or empty."""

    pass


class NoCurrentUserError(AuthError):
    """Raised when the pool has no cached current user."""

    pass


class CognitoClientError(AuthError):
    """Raised when Cognito returns an error."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code

    @property
    def message(self) -> str:
        return self.args[0]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class AuthenticationFailedError(CognitoClientError):
    """Raised when Cognito rejects a password, MFA code or new password."""

    pass


class SessionRetrievalFailedError(CognitoClientError):
    """Raised when a user handle has no valid session and cannot refresh one."""

    pass


class FederationFailedError(CognitoClientError):
    """Raised when the identity pool rejects a credential exchange."""

    pass
