"""
Robinhood Session

Async client session for the Robinhood brokerage API with transparent
re-authentication when the session token becomes invalid.
"""

__version__ = "0.1.0"

from .auth import AuthOptions, Authenticator
from .client import RobinhoodClient
from .config import Settings, settings
from .errors import (
    ErrorEvent,
    ErrorType,
    InvalidConfigurationError,
    NoAccountError,
    NoAuthTokenError,
    RequestError,
    RobinhoodError,
    UnableToAuthenticateError,
)
from .events import AuthState, Event, EventChannel
from .retry import RetrySupervisor
from .session import Credentials, RequestConfiguration, SessionState
from .transport import Transport

__all__ = [
    "AuthOptions",
    "AuthState",
    "Authenticator",
    "Credentials",
    "ErrorEvent",
    "ErrorType",
    "Event",
    "EventChannel",
    "InvalidConfigurationError",
    "NoAccountError",
    "NoAuthTokenError",
    "RequestConfiguration",
    "RequestError",
    "RetrySupervisor",
    "RobinhoodClient",
    "RobinhoodError",
    "SessionState",
    "Settings",
    "Transport",
    "UnableToAuthenticateError",
    "settings",
]
