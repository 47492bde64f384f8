"""
Session state for an authenticated Robinhood client.

The token, the bootstrapped account and the request configuration derived
from the token are held together in one frozen SessionState. Every change
replaces the whole triple, so a request being built never sees a token
without its matching Authorization header.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Accept": "*/*",
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "en;q=1, fr;q=0.9, de;q=0.8, ja;q=0.7, nl;q=0.6, it;q=0.5",
        "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
        "Connection": "keep-alive",
        "X-Robinhood-API-Version": "1.152.0",
        "User-Agent": "Robinhood/5.32.0 (com.robinhood.release.Robinhood; build:3814; iOS 10.3.3)",
    }
)


@dataclass(frozen=True)
class Credentials:
    """Username and password, held in memory only."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class RequestConfiguration:
    """Read-only snapshot used to construct a Transport."""

    headers: Mapping[str, str]
    # False returns response text instead of parsed JSON
    json: bool = True
    # False asks for an uncompressed response (Accept-Encoding: identity)
    gzip: bool = True

    @classmethod
    def for_token(cls, token: Optional[str]) -> "RequestConfiguration":
        """Default headers, plus Authorization when a token exists."""
        headers = dict(DEFAULT_HEADERS)
        if token:
            headers["Authorization"] = f"Token {token}"
        return cls(headers=MappingProxyType(headers))


@dataclass(frozen=True)
class SessionState:
    """Token, account and request configuration, always mutually consistent."""

    token: Optional[str] = None
    account: Optional[dict[str, Any]] = None
    config: RequestConfiguration = field(
        default_factory=lambda: RequestConfiguration.for_token(None)
    )

    @classmethod
    def empty(cls) -> "SessionState":
        return cls()

    @classmethod
    def with_token(cls, token: str) -> "SessionState":
        """Fresh state for a newly adopted token; the account is not yet known."""
        return cls(token=token, account=None, config=RequestConfiguration.for_token(token))

    def with_account(self, account: Optional[dict[str, Any]]) -> "SessionState":
        return SessionState(token=self.token, account=account, config=self.config)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None
