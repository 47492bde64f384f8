"""
Robinhood API client.

Every endpoint wrapper runs through the RetrySupervisor, so an expired token
is replaced transparently as long as credentials were supplied.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

from .auth import AuthOptions, Authenticator, TransportFactory
from .endpoints import (
    API_URL,
    TERMINAL_ORDER_STATES,
    Endpoint,
    OrderSide,
    OrderTrigger,
    OrderType,
    TimeInForce,
)
from .errors import NoAccountError
from .events import AuthState, Event, EventChannel, Listener
from .retry import REVALIDATE_TOKEN_TIMEOUT, RetrySupervisor
from .session import RequestConfiguration
from .transport import Transport

logger = logging.getLogger(__name__)

ORDER_DEFAULTS = {
    "time_in_force": TimeInForce.GFD.value,
    "type": OrderType.MARKET.value,
    "trigger": OrderTrigger.IMMEDIATE.value,
    "price": None,
    "stop_price": None,
    "extended_hours": False,
}


def _form_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class RobinhoodClient:
    """Async client session for the Robinhood API."""

    def __init__(
        self,
        api_url: str = API_URL,
        timeout: int = 30,
        reauth_timeout: float = REVALIDATE_TOKEN_TIMEOUT,
        transport_factory: Optional[TransportFactory] = None,
    ):
        """
        Initialize RobinhoodClient.

        Args:
            api_url: API root URL
            timeout: Per-request timeout in seconds
            reauth_timeout: Seconds to wait for re-authentication after an
                invalid token before emitting CRITICAL
            transport_factory: Builds a Transport from a RequestConfiguration
        """
        self.api_url = api_url
        self.timeout = timeout
        self.events = EventChannel()

        if transport_factory is None:
            transport_factory = self._default_transport

        self._auth = Authenticator(self.events, transport_factory, api_url=api_url)
        self._supervisor = RetrySupervisor(self._auth, self.events, timeout=reauth_timeout)

    def _default_transport(self, config: RequestConfiguration) -> Transport:
        return Transport(config, timeout=self.timeout)

    def _url(self, endpoint: Endpoint, **params: str) -> str:
        return endpoint.url(self.api_url, **params)

    @property
    def _transport(self) -> Transport:
        return self._auth.transport

    # ==========================================================================
    # Events & state
    # ==========================================================================

    def on(self, event: Event, listener: Listener) -> Listener:
        return self.events.on(event, listener)

    def once(self, event: Event, listener: Listener) -> Listener:
        return self.events.once(event, listener)

    def off(self, event: Event, listener: Listener) -> None:
        self.events.off(event, listener)

    @property
    def state(self) -> AuthState:
        return self._auth.machine.state

    @property
    def account(self) -> Optional[dict[str, Any]]:
        """The bootstrapped account, or None."""
        return self._auth.session.account

    # ==========================================================================
    # Authentication
    # ==========================================================================

    def authenticate(self, options: Union[AuthOptions, Mapping[str, Any], None]) -> None:
        """Start authenticating; listen for AUTHENTICATED, MFA_REQUESTED and ERROR."""
        self._auth.authenticate(options)

    def login_with_mfa(self, mfa_code: str) -> None:
        self._auth.login_with_mfa(mfa_code)

    def get_auth_token(self) -> Optional[str]:
        return self._auth.get_auth_token()

    async def expire_token(self) -> Any:
        """Log out. Raises NoAuthTokenError when there is no session."""
        return await self._auth.expire_token()

    # ==========================================================================
    # Market Data Endpoints
    # ==========================================================================

    async def get_quote(self, symbols: Union[str, Sequence[str]]) -> dict:
        """
        Get quotes for one or more symbols.

        Args:
            symbols: A list of symbols or a comma-separated string

        Returns:
            Quote response with a 'results' list
        """
        if not isinstance(symbols, str):
            symbols = ",".join(symbols)
        params = {"symbols": symbols.upper()}
        return await self._supervisor.execute(
            lambda: self._transport.get(self._url(Endpoint.QUOTES), params=params)
        )

    async def get_instrument(self, instrument_id: str) -> dict:
        url = self._url(Endpoint.INSTRUMENT, instrument_id=instrument_id)
        return await self._supervisor.execute(lambda: self._transport.get(url))

    async def get_instrument_by_symbol(self, symbol: str) -> dict:
        params = {"symbol": symbol.upper()}
        return await self._supervisor.execute(
            lambda: self._transport.get(self._url(Endpoint.INSTRUMENTS), params=params)
        )

    async def get_fundamentals(self, symbol: str) -> dict:
        url = self._url(Endpoint.FUNDAMENTALS, symbol=symbol.upper())
        return await self._supervisor.execute(lambda: self._transport.get(url))

    # ==========================================================================
    # Account Endpoints
    # ==========================================================================

    async def get_accounts(self) -> dict:
        return await self._supervisor.execute(
            lambda: self._transport.get(self._url(Endpoint.ACCOUNTS))
        )

    # ==========================================================================
    # Order Endpoints
    # ==========================================================================

    async def get_orders(
        self,
        updated_at: Optional[str] = None,
        instrument: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> dict:
        """
        List orders.

        Args:
            updated_at: Only orders updated at or after this ISO timestamp
            instrument: Instrument URL to filter on
            cursor: Pagination cursor from a previous response

        Returns:
            Orders response with a 'results' list
        """
        params = {}
        if updated_at:
            params["updated_at[gte]"] = updated_at
        if instrument:
            params["instrument"] = instrument
        if cursor:
            params["cursor"] = cursor

        return await self._supervisor.execute(
            lambda: self._transport.get(
                self._url(Endpoint.ORDERS), params=params if params else None
            )
        )

    async def get_order(self, order_id: str) -> dict:
        url = self._url(Endpoint.ORDER, order_id=order_id)
        return await self._supervisor.execute(lambda: self._transport.get(url))

    async def place_buy_order(self, order: Mapping[str, Any]) -> dict:
        return await self.place_order({**order, "side": OrderSide.BUY.value})

    async def place_sell_order(self, order: Mapping[str, Any]) -> dict:
        return await self.place_order({**order, "side": OrderSide.SELL.value})

    def _order_form(self, order: Mapping[str, Any]) -> dict[str, Any]:
        account = self.account
        if not account:
            raise NoAccountError("No account available to place the order against")

        form = dict(ORDER_DEFAULTS)
        form.update({key: value for key, value in order.items() if value is not None})
        form["account"] = account["url"]
        form["symbol"] = form["symbol"].upper()
        return {key: _form_value(value) for key, value in form.items()}

    async def place_order(self, order: Mapping[str, Any]) -> dict:
        """
        Place an order against the bootstrapped account.

        Args:
            order: Order fields; at least instrument, quantity, symbol and side.
                Missing time_in_force, type, trigger, price, stop_price and
                extended_hours fall back to a market order good for the day.

        Returns:
            The created order

        Raises:
            NoAccountError: If no account has been bootstrapped
        """

        async def _post() -> Any:
            # Built per attempt so a replay picks up the re-bootstrapped account
            form = self._order_form(order)
            logger.info(f"Placing {form['side']} order for {form.get('quantity')} {form['symbol']}")
            return await self._transport.post(self._url(Endpoint.ORDERS), data=form)

        return await self._supervisor.execute(_post)

    async def cancel_order(self, order: Mapping[str, Any]) -> dict:
        """
        Cancel an order unless it is already in a terminal state.

        Args:
            order: Order as returned by the API; uses its 'cancel' URL or 'id'

        Returns:
            The cancel response, or {} for orders that cannot be cancelled
        """
        if order.get("state") in TERMINAL_ORDER_STATES:
            return {}

        url = order.get("cancel")
        if not url and order.get("id"):
            url = self._url(Endpoint.CANCEL_ORDER, order_id=order["id"])
        if not url:
            raise ValueError("Order has neither a cancel URL nor an id")

        return await self._supervisor.execute(lambda: self._transport.post(url))

    # ==========================================================================
    # Generic
    # ==========================================================================

    async def request_uri(self, uri: str, method: str = "get") -> Any:
        """Request an arbitrary URI (e.g. a 'next' page link) with the session."""
        method = method.lower()
        if method not in ("get", "post"):
            raise ValueError(f"Unsupported method: {method}")
        return await self._supervisor.execute(lambda: getattr(self._transport, method)(uri))
