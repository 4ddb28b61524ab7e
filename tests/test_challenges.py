from __future__ import annotations

import pytest

from cognito_auth.auth.challenges import TRANSITIONS, ChallengeFlow, SignInState, state_of
from cognito_auth.core.errors import (
    AuthenticationFailedError,
    CognitoClientError,
    InvalidInputError,
    NotConfiguredError,
)
from cognito_auth.services.tokens import CognitoUserSession
from cognito_auth.services.user_pool import Authenticated, Failed, MFARequired, NewPasswordRequired
from tests.fakes import MFA_CODE

PASSWORD = "Secr3t!Passw0rd"


def test_terminal_states_have_no_transitions():
    assert SignInState.AUTHENTICATED not in TRANSITIONS
    assert SignInState.FAILED not in TRANSITIONS
    assert SignInState.NEW_PASSWORD_REQUIRED not in TRANSITIONS[SignInState.MFA_REQUIRED]


def test_state_of_each_result():
    assert state_of(Authenticated(CognitoUserSession("", ""))) is SignInState.AUTHENTICATED
    assert state_of(MFARequired("SMS_MFA")) is SignInState.MFA_REQUIRED
    assert state_of(NewPasswordRequired()) is SignInState.NEW_PASSWORD_REQUIRED
    assert state_of(Failed(CognitoClientError("X", "x"))) is SignInState.FAILED


@pytest.mark.asyncio
async def test_sign_in_without_pool_is_not_configured():
    with pytest.raises(NotConfiguredError):
        await ChallengeFlow(None).sign_in("alice", PASSWORD)


@pytest.mark.asyncio
@pytest.mark.parametrize("username, password", [("", PASSWORD), ("alice", ""), ("", "")])
async def test_sign_in_rejects_empty_input_before_any_call(pool, idp, username, password):
    with pytest.raises(InvalidInputError):
        await ChallengeFlow(pool).sign_in(username, password)

    assert idp.calls == []


@pytest.mark.asyncio
async def test_sign_in_without_challenge_is_authenticated(pool, idp):
    idp.add_account("alice", PASSWORD)

    user = await ChallengeFlow(pool).sign_in("alice", PASSWORD)

    assert user.challenge is None
    assert user.username == "alice"


@pytest.mark.asyncio
async def test_wrong_password_raises_with_provider_code(pool, idp):
    idp.add_account("alice", PASSWORD)

    with pytest.raises(AuthenticationFailedError) as excinfo:
        await ChallengeFlow(pool).sign_in("alice", "wrong-password")

    assert excinfo.value.code == "NotAuthorizedException"
    assert excinfo.value.message == "Incorrect username or password."
    assert isinstance(excinfo.value.__cause__, CognitoClientError)


@pytest.mark.asyncio
async def test_mfa_challenge_then_confirm(pool, idp):
    idp.add_account("alice", PASSWORD, mfa="SMS_MFA")
    flow = ChallengeFlow(pool)

    user = await flow.sign_in("alice", PASSWORD)
    assert isinstance(user.challenge, MFARequired)
    assert user.challenge.challenge_name == "SMS_MFA"

    user = await flow.confirm_sign_in(user, MFA_CODE)
    assert user.challenge is None


@pytest.mark.asyncio
async def test_wrong_mfa_code_fails(pool, idp):
    idp.add_account("alice", PASSWORD, mfa="SOFTWARE_TOKEN_MFA")
    flow = ChallengeFlow(pool)
    user = await flow.sign_in("alice", PASSWORD)

    with pytest.raises(AuthenticationFailedError) as excinfo:
        await flow.confirm_sign_in(user, "000000")

    assert excinfo.value.code == "CodeMismatchException"


@pytest.mark.asyncio
async def test_confirm_sign_in_requires_code(pool, idp):
    idp.add_account("alice", PASSWORD, mfa="SMS_MFA")
    flow = ChallengeFlow(pool)
    user = await flow.sign_in("alice", PASSWORD)
    calls_before = list(idp.calls)

    with pytest.raises(InvalidInputError):
        await flow.confirm_sign_in(user, "")

    assert idp.calls == calls_before


@pytest.mark.asyncio
async def test_new_password_then_mfa_then_authenticated(pool, idp):
    idp.add_account(
        "alice",
        PASSWORD,
        mfa="SMS_MFA",
        new_password_required=True,
        attributes={"email": "a@x.com", "email_verified": "true"},
        required_attributes=["name"],
    )
    flow = ChallengeFlow(pool)

    user = await flow.sign_in("alice", PASSWORD)
    assert user.challenge == NewPasswordRequired(user_attributes={"email": "a@x.com"}, required_attributes=["name"])

    user = await flow.complete_new_password(user, "N3w!Passw0rd", {"name": "Alice"})
    assert isinstance(user.challenge, MFARequired)
    assert idp.accounts["alice"].attributes["name"] == "Alice"

    user = await flow.confirm_sign_in(user, MFA_CODE)
    assert user.challenge is None


@pytest.mark.asyncio
async def test_mfa_answer_cannot_lead_to_new_password(pool, idp, monkeypatch):
    idp.add_account("alice", PASSWORD, mfa="SMS_MFA")
    flow = ChallengeFlow(pool)
    user = await flow.sign_in("alice", PASSWORD)

    async def _out_of_order(code):
        return NewPasswordRequired()

    monkeypatch.setattr(user, "send_mfa_code", _out_of_order)

    with pytest.raises(AuthenticationFailedError) as excinfo:
        await flow.confirm_sign_in(user, MFA_CODE)

    assert excinfo.value.code == "UnexpectedChallengeException"
    assert isinstance(user.challenge, MFARequired)
