"""
Pydantic schemas for the auth facade's requests and results.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignUpRequest(BaseModel):
    username: str = ""
    password: str = ""
    attributes: dict[str, str] = Field(
        default_factory=dict,
        description="User pool attributes in submission order (e.g. email, phone_number).",
    )
    validation_data: Optional[dict[str, str]] = Field(
        None, description="Extra data for pre sign-up triggers; never stored on the user."
    )


def sign_up_request_from_args(
    username: str,
    password: str,
    email: str | None = None,
    phone_number: str | None = None,
) -> SignUpRequest:
    """Adapt the positional (username, password, email, phone_number) form to a SignUpRequest."""
    attributes: dict[str, str] = {}
    if email:
        attributes["email"] = email
    if phone_number:
        attributes["phone_number"] = phone_number
    return SignUpRequest(username=username, password=password, attributes=attributes)


class CodeDeliveryDetails(BaseModel):
    destination: Optional[str] = None
    delivery_medium: Optional[str] = None
    attribute_name: Optional[str] = None

    @classmethod
    def from_response(cls, resp: dict | None) -> Optional["CodeDeliveryDetails"]:
        details = (resp or {}).get("CodeDeliveryDetails")
        if not details:
            return None
        return cls(
            destination=details.get("Destination"),
            delivery_medium=details.get("DeliveryMedium"),
            attribute_name=details.get("AttributeName"),
        )


class SignUpResult(BaseModel):
    """A registration awaiting (or not needing) confirmation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: Any
    user_confirmed: bool = False
    user_sub: Optional[str] = None
    code_delivery_details: Optional[CodeDeliveryDetails] = None


class EssentialCredentials(BaseModel):
    """The subset of AWS credentials safe to hand to application code."""

    model_config = ConfigDict(frozen=True)

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    identity_id: Optional[str] = None
    authenticated: bool = False


class UserInfo(BaseModel):
    username: str
    id: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class VerifiedContact(BaseModel):
    verified: dict[str, str] = Field(default_factory=dict)
    unverified: dict[str, str] = Field(default_factory=dict)
