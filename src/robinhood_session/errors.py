"""
Error taxonomy for the Robinhood session.

Lifecycle failures are reported as ErrorEvent payloads on the event channel;
the exceptions below are only raised where a caller is directly waiting on
the outcome.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorType(str, Enum):
    """Error categories emitted on the ERROR and CRITICAL events."""

    AUTHENTICATION = "AUTHENTICATION"
    AUTHENTICATION_MFA = "AUTHENTICATION_MFA"
    INVALID_ROBINHOOD_CONFIGURATION = "INVALID_ROBINHOOD_CONFIGURATION"
    NO_AUTH_TOKEN = "NO_AUTH_TOKEN"
    SETTING_ACCOUNT = "SETTING_ACCOUNT"
    UNABLE_TO_AUTHENTICATE = "UNABLE_TO_AUTHENTICATE"
    UNHANDLED = "UNHANDLED"


@dataclass(frozen=True)
class ErrorEvent:
    """Payload for ERROR and CRITICAL events."""

    type: ErrorType
    message: str


class RobinhoodError(Exception):
    """Base exception for all Robinhood session errors."""

    type: Optional[ErrorType] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidConfigurationError(RobinhoodError):
    """authenticate() was called without options."""

    type = ErrorType.INVALID_ROBINHOOD_CONFIGURATION

    def __init__(self, message: str = ErrorType.INVALID_ROBINHOOD_CONFIGURATION.value):
        super().__init__(message)


class NoAuthTokenError(RobinhoodError):
    """Logout attempted without a session token."""

    type = ErrorType.NO_AUTH_TOKEN

    def __init__(self, message: str = ErrorType.NO_AUTH_TOKEN.value):
        super().__init__(message)


class NoAccountError(RobinhoodError):
    """An order was placed before the account was bootstrapped."""

    pass


class UnableToAuthenticateError(RobinhoodError):
    """Re-authentication did not complete before the timeout."""

    type = ErrorType.UNABLE_TO_AUTHENTICATE


class RequestError(RobinhoodError):
    """
    Normalized transport failure.

    Attributes:
        message: Human readable description
        detail: API-level error detail (e.g. "Invalid token."), if any
        status_code: HTTP status, or None for network failures
    """

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.detail = detail
        self.status_code = status_code
