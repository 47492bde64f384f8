"""
Event channel and authentication state machine.

The event channel is the only way callers observe lifecycle progress: there
is no synchronous "wait for login" call. Listeners are plain callables
invoked in registration order; coroutines awaiting an event use wait_for().
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Event(str, Enum):
    """Signals emitted by the session."""

    ACCOUNT_SETUP = "ACCOUNT_SETUP"  # internal, re-emitted as AUTHENTICATED
    AUTHENTICATED = "AUTHENTICATED"
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    MFA_REQUESTED = "MFA_REQUESTED"


class AuthState(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    MFA_PENDING = "MFA_PENDING"
    AUTHENTICATED = "AUTHENTICATED"
    REAUTHENTICATING = "REAUTHENTICATING"


class EventChannel:
    """Multi-listener notification bus with one-shot subscriptions."""

    def __init__(self):
        self._listeners: dict[Event, list[tuple[Listener, bool]]] = {}

    def on(self, event: Event, listener: Listener) -> Listener:
        """Register a listener for every future emission of event."""
        self._listeners.setdefault(Event(event), []).append((listener, False))
        return listener

    def once(self, event: Event, listener: Listener) -> Listener:
        """Register a listener for the next emission of event only."""
        self._listeners.setdefault(Event(event), []).append((listener, True))
        return listener

    def off(self, event: Event, listener: Listener) -> None:
        """Remove the first registration of listener for event."""
        entries = self._listeners.get(Event(event), [])
        for i, (registered, _) in enumerate(entries):
            if registered is listener:
                del entries[i]
                return

    def listener_count(self, event: Event) -> int:
        return len(self._listeners.get(Event(event), []))

    def emit(self, event: Event, *args: Any) -> None:
        """
        Call every listener registered for event.

        One-shot listeners are removed before any listener runs, so a listener
        that triggers the same event again does not see itself re-invoked.
        A failing listener is logged and does not stop the fan-out.
        """
        event = Event(event)
        entries = self._listeners.get(event, [])
        if not entries:
            return
        self._listeners[event] = [entry for entry in entries if not entry[1]]

        for listener, _ in entries:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener for {event.value} failed")

    def wait_for(self, event: Event) -> "asyncio.Future[Any]":
        """
        Return a future resolved by the next emission of event.

        The future's result is the first emitted argument, or None.
        """
        future = asyncio.get_running_loop().create_future()

        def _resolve(*args: Any) -> None:
            if not future.done():
                future.set_result(args[0] if args else None)

        self.once(event, _resolve)
        future.add_done_callback(lambda _: self.off(event, _resolve))
        return future


class AuthStateMachine:
    """Tracks where the session is in its authentication lifecycle."""

    _TRANSITIONS = {
        AuthState.UNAUTHENTICATED: {AuthState.AUTHENTICATING, AuthState.REAUTHENTICATING},
        AuthState.AUTHENTICATING: {
            AuthState.AUTHENTICATING,
            AuthState.MFA_PENDING,
            AuthState.AUTHENTICATED,
            AuthState.UNAUTHENTICATED,
        },
        AuthState.MFA_PENDING: {
            AuthState.AUTHENTICATING,
            AuthState.UNAUTHENTICATED,
        },
        AuthState.AUTHENTICATED: {
            AuthState.AUTHENTICATING,
            AuthState.REAUTHENTICATING,
            AuthState.UNAUTHENTICATED,
        },
        AuthState.REAUTHENTICATING: {
            AuthState.REAUTHENTICATING,
            AuthState.AUTHENTICATING,
            AuthState.MFA_PENDING,
            AuthState.AUTHENTICATED,
            AuthState.UNAUTHENTICATED,
        },
    }

    def __init__(self, initial: AuthState = AuthState.UNAUTHENTICATED):
        self.state = initial

    def transition(self, new_state: AuthState) -> None:
        if new_state not in self._TRANSITIONS[self.state]:
            logger.debug(f"Unexpected auth transition {self.state.value} -> {new_state.value}")
        if new_state is not self.state:
            logger.debug(f"Auth state {self.state.value} -> {new_state.value}")
        self.state = new_state
