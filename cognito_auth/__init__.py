from cognito_auth.auth.challenges import SignInState
from cognito_auth.auth.facade import Auth
from cognito_auth.core.config import AuthConfig
from cognito_auth.core.errors import (
    AuthenticationFailedError,
    AuthError,
    CognitoClientError,
    FederationFailedError,
    InvalidInputError,
    NoCurrentUserError,
    NotConfiguredError,
    SessionRetrievalFailedError,
)
from cognito_auth.core.events import Hub, HubEvent
from cognito_auth.schemas.auth import (
    EssentialCredentials,
    SignUpRequest,
    SignUpResult,
    UserInfo,
    sign_up_request_from_args,
)
from cognito_auth.services.user_pool import MFARequired, NewPasswordRequired

__version__ = "0.1.0"

__all__ = [
    "Auth",
    "AuthConfig",
    "AuthError",
    "AuthenticationFailedError",
    "CognitoClientError",
    "EssentialCredentials",
    "FederationFailedError",
    "Hub",
    "HubEvent",
    "InvalidInputError",
    "MFARequired",
    "NewPasswordRequired",
    "NoCurrentUserError",
    "NotConfiguredError",
    "SessionRetrievalFailedError",
    "SignInState",
    "SignUpRequest",
    "SignUpResult",
    "UserInfo",
    "sign_up_request_from_args",
]
