# cognito_auth/core/config.py
import os
from typing import Any, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Keys emitted by the legacy generated config file (aws-exports style).
LEGACY_KEY_MAP = {
    "aws_user_pools_id": "user_pool_id",
    "aws_user_pools_web_client_id": "user_pool_web_client_id",
    "aws_cognito_region": "region",
    "aws_cognito_identity_pool_id": "identity_pool_id",
}

# Either pool id marks a mapping as the legacy shape.
LEGACY_DETECTION_KEYS = ("aws_cognito_identity_pool_id", "aws_user_pools_id")

CAMEL_KEY_MAP = {
    "userPoolId": "user_pool_id",
    "userPoolWebClientId": "user_pool_web_client_id",
    "region": "region",
    "identityPoolId": "identity_pool_id",
}


class Settings:
    def __init__(self) -> None:
        # Only load .env for local/dev. In deployed environments the values come from the process env.
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            load_dotenv()

        # ----------------------------
        # Cognito user pool
        # ----------------------------
        self.COGNITO_REGION = os.getenv("COGNITO_REGION", "").strip()
        self.COGNITO_USER_POOL_ID = os.getenv("COGNITO_USER_POOL_ID", "").strip()
        self.COGNITO_APP_CLIENT_ID = os.getenv("COGNITO_APP_CLIENT_ID", "").strip()

        # ----------------------------
        # Cognito identity pool (federation)
        # ----------------------------
        self.COGNITO_IDENTITY_POOL_ID = os.getenv("COGNITO_IDENTITY_POOL_ID", "").strip()

        # ----------------------------
        # boto3 client tuning
        # ----------------------------
        self.AWS_MAX_ATTEMPTS = int(os.getenv("AWS_MAX_ATTEMPTS", "3"))

        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []
        if not self.COGNITO_REGION:
            missing.append("COGNITO_REGION")
        if not self.COGNITO_USER_POOL_ID:
            missing.append("COGNITO_USER_POOL_ID")
        if not self.COGNITO_APP_CLIENT_ID:
            missing.append("COGNITO_APP_CLIENT_ID")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"


settings = Settings()


class AuthConfig(BaseModel):
    """
    Resolved Cognito configuration.

    Instances are immutable; re-configuration produces a new object via
    ``merged_with`` and the facade rebuilds everything scoped to the pool.
    """

    model_config = ConfigDict(frozen=True)

    region: str | None = None
    user_pool_id: str | None = None
    user_pool_web_client_id: str | None = None
    identity_pool_id: str | None = None

    @property
    def has_user_pool(self) -> bool:
        return bool(self.user_pool_id)

    @property
    def logins_key(self) -> str:
        """Provider name the identity pool expects for ID tokens from this user pool."""
        return f"cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any] | None) -> "AuthConfig":
        """
        Build a config from a caller-supplied mapping.

        Accepts snake_case keys, camelCase keys, an optional ``Auth`` wrapper, and
        the legacy ``aws_*`` shape, detected by either pool id key.
        """
        if not config:
            return cls()

        if any(key in config for key in LEGACY_DETECTION_KEYS):
            return cls(**{field: config[key] for key, field in LEGACY_KEY_MAP.items() if key in config})

        conf = config.get("Auth") or config
        values: dict[str, Any] = {}
        for key, value in conf.items():
            field = CAMEL_KEY_MAP.get(key, key)
            if field in cls.model_fields:
                values[field] = value
        return cls(**values)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "AuthConfig":
        source = source or settings
        return cls(
            region=source.COGNITO_REGION or None,
            user_pool_id=source.COGNITO_USER_POOL_ID or None,
            user_pool_web_client_id=source.COGNITO_APP_CLIENT_ID or None,
            identity_pool_id=source.COGNITO_IDENTITY_POOL_ID or None,
        )

    def merged_with(self, other: "AuthConfig") -> "AuthConfig":
        """Return a new config with the fields explicitly set on ``other`` applied over this one."""
        updates = other.model_dump(exclude_unset=True)
        return self.model_copy(update=updates)
