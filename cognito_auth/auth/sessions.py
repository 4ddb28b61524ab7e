# cognito_auth/auth/sessions.py
from __future__ import annotations

import logging

from botocore.exceptions import BotoCoreError

from cognito_auth.core.errors import (
    CognitoClientError,
    NoCurrentUserError,
    NotConfiguredError,
    SessionRetrievalFailedError,
)
from cognito_auth.services.tokens import CognitoUserSession
from cognito_auth.services.user_pool import CognitoUser, CognitoUserPool

logger = logging.getLogger(__name__)


class SessionManager:
    """Looks up the pool's current user and retrieves sessions for user handles."""

    def __init__(self, pool: CognitoUserPool | None) -> None:
        self.pool = pool

    def _require_pool(self) -> CognitoUserPool:
        if self.pool is None:
            raise NotConfiguredError("No userPool")
        return self.pool

    async def current_user(self) -> CognitoUser:
        user = self._require_pool().get_current_user()
        if user is None:
            raise NoCurrentUserError("UserPool does not have current user")
        return user

    async def current_authenticated_user(self) -> CognitoUser:
        """
        Return the current user, but only if a session can be retrieved for it.

        Raises:
            NotConfiguredError: no user pool.
            NoCurrentUserError: nobody has signed in on this pool.
            SessionRetrievalFailedError: the session is gone and cannot be refreshed.
        """
        user = await self.current_user()
        try:
            await user.get_session()
        except SessionRetrievalFailedError:
            raise
        except CognitoClientError as exc:
            raise SessionRetrievalFailedError(code=exc.code, message=exc.message) from exc
        except BotoCoreError as exc:
            # Transport errors are not ClientErrors and bypass translate_error.
            raise SessionRetrievalFailedError(code="SessionRetrievalException", message=str(exc)) from exc
        return user

    async def user_session(self, user: CognitoUser) -> CognitoUserSession:
        if user is None:
            raise NoCurrentUserError("No user given")
        return await user.get_session()

    async def current_user_session(self) -> CognitoUserSession:
        user = await self.current_user()
        session = await self.user_session(user)
        logger.debug("current session for %s", user.username)
        return session

    async def current_session(self) -> CognitoUserSession:
        return await self.current_user_session()
