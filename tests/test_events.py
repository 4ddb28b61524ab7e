from __future__ import annotations

import logging

from cognito_auth.core.events import AUTH_CHANNEL, CREDENTIALS_CHANNEL, Hub, HubEvent


def test_hub_delivers_only_to_the_channel_listeners():
    hub = Hub()
    auth_events: list[HubEvent] = []
    credential_events: list[HubEvent] = []
    hub.listen(AUTH_CHANNEL, auth_events.append)
    hub.listen(CREDENTIALS_CHANNEL, credential_events.append)

    hub.dispatch(AUTH_CHANNEL, {"event": "signIn", "data": None}, "Auth")

    assert auth_events == [HubEvent(channel="auth", payload={"event": "signIn", "data": None}, source="Auth")]
    assert credential_events == []


def test_hub_remove_stops_delivery():
    hub = Hub()
    seen: list[HubEvent] = []
    hub.listen(AUTH_CHANNEL, seen.append)
    hub.remove(AUTH_CHANNEL, seen.append)
    # Removing twice is harmless.
    hub.remove(AUTH_CHANNEL, seen.append)

    hub.dispatch(AUTH_CHANNEL, {"event": "signOut", "data": None}, "Auth")

    assert seen == []


def test_failing_listener_does_not_block_the_rest(caplog):
    hub = Hub()
    seen: list[HubEvent] = []

    def _boom(event):
        raise ValueError("listener bug")

    hub.listen(CREDENTIALS_CHANNEL, _boom)
    hub.listen(CREDENTIALS_CHANNEL, seen.append)

    with caplog.at_level(logging.ERROR, logger="cognito_auth.core.events"):
        hub.dispatch(CREDENTIALS_CHANNEL, {"identity_id": "x"}, "Auth")

    assert len(seen) == 1
    assert any(r.message == "Hub listener failed" and r.channel == "credentials" for r in caplog.records)
