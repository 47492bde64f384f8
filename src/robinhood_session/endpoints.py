"""Robinhood API endpoints and order vocabulary."""

from enum import Enum

API_URL = "https://api.robinhood.com"


class Endpoint(str, Enum):
    """Path templates relative to the API root."""

    LOGIN = "/api-token-auth/"
    LOGOUT = "/api-token-logout/"
    ACCOUNTS = "/accounts/"
    QUOTES = "/quotes/"
    INSTRUMENTS = "/instruments/"
    INSTRUMENT = "/instruments/{instrument_id}/"
    ORDERS = "/orders/"
    ORDER = "/orders/{order_id}/"
    CANCEL_ORDER = "/orders/{order_id}/cancel/"
    FUNDAMENTALS = "/fundamentals/{symbol}/"

    def url(self, api_url: str = API_URL, **params: str) -> str:
        """Build the absolute URL, filling any path parameters."""
        return api_url + self.value.format(**params)


class OrderState(str, Enum):
    QUEUED = "queued"
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CANCELED = "canceled"
    FAILED = "failed"


# Orders in these states can no longer be cancelled
TERMINAL_ORDER_STATES = frozenset(
    {
        OrderState.FILLED.value,
        OrderState.REJECTED.value,
        OrderState.CANCELED.value,
        OrderState.CANCELLED.value,
        OrderState.FAILED.value,
    }
)


class TimeInForce(str, Enum):
    GFD = "gfd"  # Good for day
    GTC = "gtc"  # Good till canceled
    IOC = "ioc"
    FOK = "fok"
    OPG = "opg"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


class OrderTrigger(str, Enum):
    IMMEDIATE = "immediate"
    STOP = "stop"


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"
