from __future__ import annotations

import pytest
from pydantic import ValidationError

from cognito_auth.core.config import AuthConfig, Settings


def test_from_mapping_accepts_camel_case_keys():
    config = AuthConfig.from_mapping(
        {
            "region": "eu-west-1",
            "userPoolId": "eu-west-1_Abc",
            "userPoolWebClientId": "client-abc",
            "identityPoolId": "eu-west-1:pool",
        }
    )

    assert config.region == "eu-west-1"
    assert config.user_pool_id == "eu-west-1_Abc"
    assert config.user_pool_web_client_id == "client-abc"
    assert config.identity_pool_id == "eu-west-1:pool"


def test_from_mapping_unwraps_auth_key():
    config = AuthConfig.from_mapping({"Auth": {"userPoolId": "us-east-1_X", "region": "us-east-1"}})

    assert config.user_pool_id == "us-east-1_X"
    assert config.region == "us-east-1"
    assert config.identity_pool_id is None


def test_from_mapping_detects_legacy_shape():
    config = AuthConfig.from_mapping(
        {
            "aws_project_region": "us-east-1",
            "aws_cognito_identity_pool_id": "us-east-1:legacy",
            "aws_cognito_region": "us-east-1",
            "aws_user_pools_id": "us-east-1_Legacy",
            "aws_user_pools_web_client_id": "legacy-client",
        }
    )

    assert config == AuthConfig(
        region="us-east-1",
        user_pool_id="us-east-1_Legacy",
        user_pool_web_client_id="legacy-client",
        identity_pool_id="us-east-1:legacy",
    )


def test_from_mapping_detects_legacy_shape_without_identity_pool():
    config = AuthConfig.from_mapping(
        {
            "aws_cognito_region": "us-east-1",
            "aws_user_pools_id": "us-east-1_Legacy",
            "aws_user_pools_web_client_id": "legacy-client",
        }
    )

    assert config == AuthConfig(
        region="us-east-1",
        user_pool_id="us-east-1_Legacy",
        user_pool_web_client_id="legacy-client",
    )
    assert config.identity_pool_id is None


def test_legacy_user_pool_only_mapping_keeps_identity_pool_on_merge(auth_config):
    merged = auth_config.merged_with(AuthConfig.from_mapping({"aws_user_pools_id": "us-east-1_Other"}))

    assert merged.user_pool_id == "us-east-1_Other"
    assert merged.identity_pool_id == auth_config.identity_pool_id


def test_from_mapping_ignores_unknown_keys():
    config = AuthConfig.from_mapping({"userPoolId": "us-east-1_X", "mandatorySignIn": True})
    assert config == AuthConfig(user_pool_id="us-east-1_X")


def test_from_mapping_empty_is_blank_config():
    assert AuthConfig.from_mapping(None) == AuthConfig()
    assert AuthConfig.from_mapping({}) == AuthConfig()


def test_merged_with_only_overrides_fields_that_were_given(auth_config):
    merged = auth_config.merged_with(AuthConfig.from_mapping({"identityPoolId": "us-east-1:other"}))

    assert merged.identity_pool_id == "us-east-1:other"
    assert merged.user_pool_id == auth_config.user_pool_id
    assert merged.user_pool_web_client_id == auth_config.user_pool_web_client_id
    assert merged.region == auth_config.region
    # The receiver is untouched.
    assert auth_config.identity_pool_id != "us-east-1:other"


def test_config_is_immutable(auth_config):
    with pytest.raises(ValidationError):
        auth_config.region = "eu-west-1"


def test_logins_key_names_the_user_pool_provider(auth_config):
    assert auth_config.logins_key == "cognito-idp.us-east-1.amazonaws.com/us-east-1_TestPool"


def test_has_user_pool():
    assert AuthConfig(user_pool_id="us-east-1_X").has_user_pool
    assert not AuthConfig(identity_pool_id="us-east-1:pool").has_user_pool


def test_settings_read_from_env(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("COGNITO_REGION", " us-west-2 ")
    monkeypatch.setenv("COGNITO_USER_POOL_ID", "us-west-2_Env")
    monkeypatch.setenv("COGNITO_APP_CLIENT_ID", "env-client")
    monkeypatch.setenv("COGNITO_IDENTITY_POOL_ID", "us-west-2:env-pool")
    monkeypatch.setenv("AWS_MAX_ATTEMPTS", "5")

    s = Settings()
    config = AuthConfig.from_settings(s)

    assert s.AWS_MAX_ATTEMPTS == 5
    assert not s.is_prod
    assert config == AuthConfig(
        region="us-west-2",
        user_pool_id="us-west-2_Env",
        user_pool_web_client_id="env-client",
        identity_pool_id="us-west-2:env-pool",
    )


def test_settings_blank_env_maps_to_none(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    for name in ("COGNITO_REGION", "COGNITO_USER_POOL_ID", "COGNITO_APP_CLIENT_ID", "COGNITO_IDENTITY_POOL_ID"):
        monkeypatch.setenv(name, "")

    assert AuthConfig.from_settings(Settings()) == AuthConfig()


def test_prod_requires_user_pool_settings(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("COGNITO_REGION", "us-east-1")
    monkeypatch.setenv("COGNITO_USER_POOL_ID", "")
    monkeypatch.setenv("COGNITO_APP_CLIENT_ID", "")

    with pytest.raises(RuntimeError) as excinfo:
        Settings()

    assert "COGNITO_USER_POOL_ID" in str(excinfo.value)
    assert "COGNITO_APP_CLIENT_ID" in str(excinfo.value)
    assert "COGNITO_REGION" not in str(excinfo.value)
