"""
Authentication lifecycle for the Robinhood API.

Handles the three ways of acquiring a session token (existing token,
username/password, username/password plus MFA code), the account bootstrap
that follows every token change, and logout.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Mapping, Optional, Union

from .endpoints import API_URL, Endpoint
from .errors import ErrorEvent, ErrorType, InvalidConfigurationError, NoAuthTokenError, RequestError
from .events import AuthState, AuthStateMachine, Event, EventChannel
from .session import Credentials, RequestConfiguration, SessionState
from .transport import Transport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[RequestConfiguration], Transport]


@dataclass(frozen=True)
class AuthOptions:
    """How to authenticate. The token path wins when both are given."""

    auth_token: Optional[str] = None
    credentials: Optional[Credentials] = None

    def __bool__(self) -> bool:
        return bool(self.auth_token or self.credentials)

    @classmethod
    def coerce(cls, options: Union["AuthOptions", Mapping[str, Any]]) -> "AuthOptions":
        """Accept AuthOptions or a mapping with authToken/auth_token and credentials keys."""
        if isinstance(options, AuthOptions):
            return options

        credentials = options.get("credentials")
        if isinstance(credentials, Mapping):
            credentials = Credentials(
                username=credentials["username"],
                password=credentials["password"],
            )
        return cls(
            auth_token=options.get("auth_token") or options.get("authToken"),
            credentials=credentials,
        )


class Authenticator:
    """Owns the session state and drives it through the login lifecycle."""

    def __init__(
        self,
        events: EventChannel,
        transport_factory: TransportFactory,
        api_url: str = API_URL,
    ):
        """
        Initialize Authenticator.

        Args:
            events: Channel on which lifecycle events are announced
            transport_factory: Builds a Transport from a RequestConfiguration
            api_url: API root URL
        """
        self.events = events
        self.api_url = api_url
        self.options: Optional[AuthOptions] = None
        self.machine = AuthStateMachine()
        self._transport_factory = transport_factory
        self._tasks: set[asyncio.Task] = set()
        self._state = SessionState.empty()
        self._transport = transport_factory(self._state.config)

        self.events.on(Event.ACCOUNT_SETUP, self._on_account_setup)

    @property
    def session(self) -> SessionState:
        return self._state

    @property
    def transport(self) -> Transport:
        """Transport matching the current session state."""
        return self._transport

    def _replace_session(self, state: SessionState) -> None:
        # Both attributes change with no await in between
        self._state = state
        self._transport = self._transport_factory(state.config)

    def reset(self) -> None:
        """Clear token and account and fall back to the default headers."""
        self._replace_session(SessionState.empty())

    def get_auth_token(self) -> Optional[str]:
        return self._state.token

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._report_failure)
        return task

    def _report_failure(self, task: asyncio.Task) -> None:
        """Turn an unexpected exception in a login flow into ERROR UNHANDLED."""
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        logger.error("Authentication flow failed", exc_info=error)
        if self.machine.state is not AuthState.AUTHENTICATED:
            self.machine.transition(AuthState.UNAUTHENTICATED)
        self.emit_error(ErrorType.UNHANDLED, str(error) or type(error).__name__)

    def emit_error(
        self,
        error_type: ErrorType,
        message: str,
        event: Event = Event.ERROR,
    ) -> None:
        """Announce a lifecycle failure on the ERROR (or CRITICAL) event."""
        if event is Event.CRITICAL:
            logger.error(f"{error_type.value}: {message}")
        else:
            logger.warning(f"{error_type.value}: {message}")
        self.events.emit(event, ErrorEvent(type=error_type, message=message))

    # ==========================================================================
    # Entry points
    # ==========================================================================

    def authenticate(self, options: Union[AuthOptions, Mapping[str, Any], None]) -> None:
        """
        Start authenticating. Progress is reported on the event channel.

        Must be called from a running event loop; the login itself runs as a task.

        Args:
            options: AuthOptions, or a mapping with authToken and/or credentials

        Raises:
            InvalidConfigurationError: If options is missing or empty
        """
        if not options:
            raise InvalidConfigurationError()
        options = AuthOptions.coerce(options)
        if not options:
            raise InvalidConfigurationError()

        self.options = options
        self.machine.transition(AuthState.AUTHENTICATING)

        if options.auth_token:
            self._spawn(self.adopt_token(options.auth_token))
        else:
            self._spawn(self.login_with_credentials())

    def login_with_mfa(self, mfa_code: str) -> None:
        """Complete a login that answered MFA_REQUESTED."""
        self.machine.transition(AuthState.AUTHENTICATING)
        self._spawn(self._complete_mfa(mfa_code))

    def reauthenticate(self) -> None:
        """Drop the current session and log in again with the stored credentials."""
        logger.info("Re-authenticating with stored credentials")
        self.reset()
        self.machine.transition(AuthState.REAUTHENTICATING)
        self._spawn(self.login_with_credentials())

    async def expire_token(self) -> Any:
        """
        Log out and clear the session.

        Returns:
            The full logout response

        Raises:
            NoAuthTokenError: If there is no session to log out of
            RequestError: If the logout request fails
        """
        if not self.get_auth_token():
            raise NoAuthTokenError()

        response = await self.transport.post(
            Endpoint.LOGOUT.url(self.api_url), full_response=True
        )
        self.reset()
        self.machine.transition(AuthState.UNAUTHENTICATED)
        logger.info("Logged out")
        return response

    # ==========================================================================
    # Login flows
    # ==========================================================================

    async def _login(self, mfa_code: Optional[str] = None) -> Any:
        credentials = self.options.credentials
        form = {
            "password": credentials.password,
            "username": credentials.username,
        }
        if mfa_code:
            form["mfa_code"] = mfa_code

        return await self.transport.post(Endpoint.LOGIN.url(self.api_url), data=form)

    def _require_credentials(self) -> bool:
        if self.options is not None and self.options.credentials is not None:
            return True
        self.machine.transition(AuthState.UNAUTHENTICATED)
        self.emit_error(ErrorType.AUTHENTICATION, "No credentials available to authenticate with")
        return False

    async def login_with_credentials(self) -> None:
        """Log in with username and password."""
        if not self._require_credentials():
            return

        logger.info(f"Logging in as {self.options.credentials.username}")
        try:
            body = await self._login()
        except RequestError as e:
            self.machine.transition(AuthState.UNAUTHENTICATED)
            self.emit_error(ErrorType.AUTHENTICATION, e.message)
            return

        if isinstance(body, Mapping) and body.get("token"):
            await self.adopt_token(body["token"])
        elif isinstance(body, Mapping) and body.get("mfa_required"):
            logger.info("Login requires MFA")
            self.machine.transition(AuthState.MFA_PENDING)
            self.events.emit(Event.MFA_REQUESTED, {"mfa_type": body.get("mfa_type")})
        else:
            self.machine.transition(AuthState.UNAUTHENTICATED)
            self.emit_error(ErrorType.UNHANDLED, "Authentication body response is invalid")

    async def _complete_mfa(self, mfa_code: str) -> None:
        if not self._require_credentials():
            return

        try:
            body = await self._login(mfa_code)
        except RequestError as e:
            self.machine.transition(AuthState.MFA_PENDING)
            self.emit_error(ErrorType.AUTHENTICATION_MFA, e.message)
            return

        if isinstance(body, Mapping) and body.get("token"):
            await self.adopt_token(body["token"])
        else:
            self.machine.transition(AuthState.UNAUTHENTICATED)
            self.emit_error(ErrorType.UNHANDLED, "No token when authenticating using MFA")

    # ==========================================================================
    # Token adoption & account bootstrap
    # ==========================================================================

    async def adopt_token(self, token: str) -> None:
        """Make token current, then fetch the account it belongs to."""
        self._replace_session(SessionState.with_token(token))
        logger.info("Auth token set, fetching account")
        await self._setup_account(token)

    async def _setup_account(self, token: str) -> None:
        """
        Fetch the account list and keep the first account.

        The token stays set when this fails.
        """
        try:
            body = await self.transport.get(Endpoint.ACCOUNTS.url(self.api_url))
        except RequestError as e:
            self.emit_error(ErrorType.SETTING_ACCOUNT, e.message)
            return

        if self._state.token != token:
            logger.debug("Token changed while fetching account, discarding result")
            return

        results = body.get("results") if isinstance(body, Mapping) else None
        if not results:
            self.emit_error(ErrorType.SETTING_ACCOUNT, "Account response has no results")
            return

        account = results[0]
        if not isinstance(account, Mapping):
            self.emit_error(ErrorType.SETTING_ACCOUNT, "Account response is invalid")
            return

        self._replace_session(self._state.with_account(dict(account)))
        logger.info(f"Account ready: {account.get('account_number', 'unknown')}")
        self.events.emit(Event.ACCOUNT_SETUP)

    def _on_account_setup(self) -> None:
        self.machine.transition(AuthState.AUTHENTICATED)
        self.events.emit(Event.AUTHENTICATED)
