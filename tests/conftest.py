import os

# Keep Settings out of prod validation and away from a developer's real pool.
os.environ.setdefault("ENV", "test")

from functools import partial

import pytest

from cognito_auth.auth.facade import Auth
from cognito_auth.core.config import AuthConfig
from cognito_auth.services.identity_credentials import CognitoIdentityCredentials
from cognito_auth.services.user_pool import CognitoUserPool, MemoryStorage

from tests.fakes import CapturingDispatcher, FakeCognitoIdentity, FakeCognitoIdp

REGION = "us-east-1"
USER_POOL_ID = "us-east-1_TestPool"
CLIENT_ID = "client123"
IDENTITY_POOL_ID = "us-east-1:11111111-2222-3333-4444-555555555555"


@pytest.fixture()
def auth_config():
    return AuthConfig(
        region=REGION,
        user_pool_id=USER_POOL_ID,
        user_pool_web_client_id=CLIENT_ID,
        identity_pool_id=IDENTITY_POOL_ID,
    )


@pytest.fixture()
def idp():
    return FakeCognitoIdp()


@pytest.fixture()
def identity():
    return FakeCognitoIdentity(region=REGION)


@pytest.fixture()
def dispatcher():
    return CapturingDispatcher()


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def pool(idp, storage):
    return CognitoUserPool(USER_POOL_ID, CLIENT_ID, client=idp, storage=storage)


@pytest.fixture()
def credentials_factory(identity):
    return partial(CognitoIdentityCredentials, client=identity)


@pytest.fixture()
def auth(auth_config, idp, dispatcher, credentials_factory):
    def _pool_factory(config, storage):
        return CognitoUserPool(config.user_pool_id, config.user_pool_web_client_id, client=idp, storage=storage)

    return Auth(
        auth_config,
        dispatcher=dispatcher,
        pool_factory=_pool_factory,
        credentials_factory=credentials_factory,
    )
