"""Shared test fixtures.

FakeApi stands in for the Robinhood HTTP API. Each Transport the client
builds is a FakeTransport bound to the RequestConfiguration of that moment,
so recorded calls show which Authorization header each request carried.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Optional

import pytest

from robinhood_session.client import RobinhoodClient
from robinhood_session.endpoints import Endpoint
from robinhood_session.errors import RequestError
from robinhood_session.events import Event
from robinhood_session.session import RequestConfiguration

LOGIN_URL = Endpoint.LOGIN.url()
LOGOUT_URL = Endpoint.LOGOUT.url()
ACCOUNTS_URL = Endpoint.ACCOUNTS.url()
QUOTES_URL = Endpoint.QUOTES.url()
ORDERS_URL = Endpoint.ORDERS.url()

ACCOUNT = {"url": "https://api.robinhood.com/accounts/5SE16159/", "account_number": "5SE16159"}
CREDENTIALS = {"username": "foo", "password": "bar"}


def invalid_token_error() -> RequestError:
    return RequestError("Invalid token.", detail="Invalid token.", status_code=401)


@dataclass
class RecordedCall:
    method: str
    uri: str
    params: Optional[dict]
    data: Optional[dict]
    authorization: Optional[str]


class FakeApi:
    """Scripted responses per (method, uri); the last response repeats.

    A response may be a value, an exception to raise, or a callable
    returning either (coroutine functions are awaited)."""

    def __init__(self):
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def route(self, method: str, uri: str, *responses: Any) -> None:
        self._routes[(method, uri)] = list(responses)

    def calls_to(self, method: str, uri: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.uri == uri]

    async def handle(
        self,
        method: str,
        uri: str,
        config: RequestConfiguration,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
    ) -> Any:
        self.calls.append(
            RecordedCall(method, uri, params, data, config.headers.get("Authorization"))
        )
        # Yield like a real network call would
        await asyncio.sleep(0)

        responses = self._routes.get((method, uri))
        if not responses:
            raise RequestError(f"No route for {method} {uri}", status_code=404)
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if callable(response):
            response = response()
        if inspect.isawaitable(response):
            response = await response
        if isinstance(response, BaseException):
            raise response
        return response


class FakeTransport:
    def __init__(self, api: FakeApi, config: RequestConfiguration):
        self.api = api
        self.config = config

    async def get(self, uri: str, params: Optional[dict] = None) -> Any:
        return await self.api.handle("GET", uri, self.config, params=params)

    async def post(
        self, uri: str, data: Optional[dict] = None, full_response: bool = False
    ) -> Any:
        return await self.api.handle("POST", uri, self.config, data=data)


class EventRecorder:
    """Records every event emitted on a client, in order."""

    def __init__(self, client: RobinhoodClient):
        self.events: list[tuple[Event, Any]] = []
        for event in (
            Event.AUTHENTICATED,
            Event.CRITICAL,
            Event.ERROR,
            Event.MFA_REQUESTED,
        ):
            client.on(event, self._recorder(event))

    def _recorder(self, event: Event):
        def record(*args: Any) -> None:
            self.events.append((event, args[0] if args else None))

        return record

    def of(self, event: Event) -> list[Any]:
        return [payload for e, payload in self.events if e is event]


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def make_client(api):
    def _make(reauth_timeout: float = 5) -> RobinhoodClient:
        return RobinhoodClient(
            reauth_timeout=reauth_timeout,
            transport_factory=lambda config: FakeTransport(api, config),
        )

    return _make


@pytest.fixture
def client(make_client) -> RobinhoodClient:
    return make_client()


@pytest.fixture
def recorder(client) -> EventRecorder:
    return EventRecorder(client)


async def wait(future: "asyncio.Future[Any]", timeout: float = 1) -> Any:
    return await asyncio.wait_for(future, timeout)


async def login(client: RobinhoodClient, api: FakeApi, token: str = "token-1") -> None:
    """Authenticate client with credentials against the fake API."""
    api.route("POST", LOGIN_URL, {"token": token})
    api.route("GET", ACCOUNTS_URL, {"results": [ACCOUNT]})
    authenticated = client.events.wait_for(Event.AUTHENTICATED)
    client.authenticate({"credentials": CREDENTIALS})
    await wait(authenticated)
