# cognito_auth/core/events.py
"""
Event dispatch for credential changes and auth lifecycle events.

The facade receives a dispatcher at construction. ``Hub`` is the default
in-process implementation; anything with a matching ``dispatch`` works.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

AUTH_CHANNEL = "auth"
CREDENTIALS_CHANNEL = "credentials"


@dataclass(frozen=True)
class HubEvent:
    channel: str
    payload: Any
    source: str


Listener = Callable[[HubEvent], None]


class EventDispatcher(Protocol):
    def dispatch(self, channel: str, payload: Any, source: str = "") -> None:
        ...


class Hub:
    """Synchronous fan-out of events to listeners registered per channel."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def listen(self, channel: str, listener: Listener) -> None:
        self._listeners[channel].append(listener)

    def remove(self, channel: str, listener: Listener) -> None:
        listeners = self._listeners.get(channel, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch(self, channel: str, payload: Any, source: str = "") -> None:
        event = HubEvent(channel=channel, payload=payload, source=source)
        for listener in list(self._listeners.get(channel, [])):
            try:
                listener(event)
            except Exception:
                # One faulty listener must not stop delivery to the rest.
                logger.exception("Hub listener failed", extra={"channel": channel, "source": source})
