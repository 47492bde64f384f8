"""
Transparent recovery from invalid session tokens.

Every authenticated call runs through RetrySupervisor.execute(). When a call
fails because the token is no longer accepted, the supervisor logs in again
with the stored credentials and replays the call. Concurrent failures share
a single re-authentication episode.
"""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Optional

from .auth import Authenticator
from .errors import ErrorType, UnableToAuthenticateError
from .events import Event, EventChannel

logger = logging.getLogger(__name__)

REVALIDATE_TOKEN_TIMEOUT = 60 * 5  # seconds
UNABLE_TO_AUTHENTICATE_MESSAGE = "Invalid token and unable to authenticate"

_NON_ALPHA = re.compile(r"[^a-zA-Z]")

Call = Callable[[], Awaitable[Any]]

_UNKNOWN = object()


def is_invalid_token(error: BaseException) -> bool:
    """True when error.detail reads "invalid token", ignoring case and punctuation."""
    detail = getattr(error, "detail", None)
    if not isinstance(detail, str):
        return False
    return _NON_ALPHA.sub("", detail).lower() == "invalidtoken"


class RetrySupervisor:
    """Wraps API calls with invalid-token recovery."""

    def __init__(
        self,
        authenticator: Authenticator,
        events: EventChannel,
        timeout: float = REVALIDATE_TOKEN_TIMEOUT,
    ):
        """
        Initialize RetrySupervisor.

        Args:
            authenticator: Authenticator used to log in again
            events: Channel carrying AUTHENTICATED and CRITICAL
            timeout: Seconds to wait for re-authentication before giving up
        """
        self.authenticator = authenticator
        self.events = events
        self.timeout = timeout
        self._episode: Optional[asyncio.Future] = None

    @property
    def recovering(self) -> bool:
        """True while a re-authentication episode is in flight."""
        return self._episode is not None and not self._episode.done()

    async def execute(self, call: Call) -> Any:
        """
        Run call, recovering once per failure from an invalid token.

        Args:
            call: Zero-argument coroutine function issuing the request

        Returns:
            The call's result, possibly from a replay after re-authentication

        Raises:
            Exception: Any failure that is not an invalid token, unchanged
            UnableToAuthenticateError: If re-authentication timed out
        """
        sent_token = self.authenticator.get_auth_token()
        try:
            return await call()
        except Exception as error:
            return await self.recover(
                error, lambda: self.execute(call), sent_token=sent_token
            )

    async def recover(
        self, error: Exception, retry: Call, sent_token: Any = _UNKNOWN
    ) -> Any:
        """
        Re-authenticate and replay, or re-raise error if it is not recoverable.

        Args:
            error: Failure raised by the original call
            retry: Replays the original call
            sent_token: Token the original call was sent with, when known.
                If the session has moved on to another token since, the call
                is replayed without logging in again.
        """
        if not is_invalid_token(error):
            raise error

        current_token = self.authenticator.get_auth_token()
        if (
            sent_token is not _UNKNOWN
            and not self.recovering
            and current_token is not None
            and current_token != sent_token
        ):
            logger.debug("Token was replaced after the call was sent, replaying")
            return await retry()

        logger.warning(f"Invalid token detected: {error}")
        # Shield so a cancelled waiter does not cancel the shared episode
        await asyncio.shield(self._join_episode())
        return await retry()

    def _join_episode(self) -> asyncio.Future:
        if not self.recovering:
            self._episode = self._start_episode()
        else:
            logger.debug("Re-authentication already in flight, waiting on it")
        return self._episode

    def _start_episode(self) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        episode = loop.create_future()

        def on_authenticated() -> None:
            timer.cancel()
            if not episode.done():
                episode.set_result(None)

        def on_timeout() -> None:
            self.events.off(Event.AUTHENTICATED, on_authenticated)
            self.authenticator.emit_error(
                ErrorType.UNABLE_TO_AUTHENTICATE,
                UNABLE_TO_AUTHENTICATE_MESSAGE,
                Event.CRITICAL,
            )
            if not episode.done():
                episode.set_exception(UnableToAuthenticateError(UNABLE_TO_AUTHENTICATE_MESSAGE))

        timer = loop.call_later(self.timeout, on_timeout)
        self.events.once(Event.AUTHENTICATED, on_authenticated)
        self.authenticator.reauthenticate()
        return episode
