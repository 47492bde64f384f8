"""Market data tools for the Robinhood MCP server."""

from typing import Any, Optional

from ..client import RobinhoodClient

# Schema for get_quote tool
GET_QUOTE_SCHEMA = {
    "type": "object",
    "properties": {
        "symbols": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Ticker symbols (e.g., ['AAPL', 'FB'])",
        }
    },
    "required": ["symbols"],
}

# Schema for get_instrument tool
GET_INSTRUMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "symbol": {
            "type": "string",
            "description": "Ticker symbol (e.g., 'MSFT')",
        },
        "instrument_id": {
            "type": "string",
            "description": "Instrument id, used instead of symbol when given",
        },
    },
    "required": [],
}

# Schema for get_fundamentals tool
GET_FUNDAMENTALS_SCHEMA = {
    "type": "object",
    "properties": {
        "symbol": {
            "type": "string",
            "description": "Ticker symbol (e.g., 'MSFT')",
        }
    },
    "required": ["symbol"],
}


def _to_float(value: Any) -> Optional[float]:
    """Robinhood returns decimals as strings ("166.4400")."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_quote(data: dict) -> dict[str, Any]:
    """
    Parse quote data from Robinhood API response.

    Args:
        data: One element of the quotes 'results' list

    Returns:
        Parsed quote dict
    """
    return {
        "symbol": data.get("symbol"),
        "last_price": _to_float(data.get("last_trade_price")),
        "extended_hours_price": _to_float(data.get("last_extended_hours_trade_price")),
        "bid": _to_float(data.get("bid_price")),
        "ask": _to_float(data.get("ask_price")),
        "bid_size": data.get("bid_size"),
        "ask_size": data.get("ask_size"),
        "prev_close": _to_float(data.get("previous_close")),
        "trading_halted": data.get("trading_halted"),
        "updated_at": data.get("updated_at"),
    }


def _parse_instrument(data: dict) -> dict[str, Any]:
    return {
        "id": data.get("id"),
        "symbol": data.get("symbol"),
        "name": data.get("simple_name") or data.get("name"),
        "type": data.get("type"),
        "tradeable": data.get("tradeable"),
        "state": data.get("state"),
        "url": data.get("url"),
    }


def _parse_fundamentals(symbol: str, data: dict) -> dict[str, Any]:
    """
    Parse fundamentals data from Robinhood API response.

    Args:
        symbol: Ticker symbol
        data: Raw fundamentals response

    Returns:
        Parsed fundamentals dict
    """
    return {
        "symbol": symbol,
        "open": _to_float(data.get("open")),
        "high": _to_float(data.get("high")),
        "low": _to_float(data.get("low")),
        "volume": _to_float(data.get("volume")),
        "average_volume": _to_float(data.get("average_volume")),
        "52_week_high": _to_float(data.get("high_52_weeks")),
        "52_week_low": _to_float(data.get("low_52_weeks")),
        "market_cap": _to_float(data.get("market_cap")),
        "pe_ratio": _to_float(data.get("pe_ratio")),
        "dividend_yield": _to_float(data.get("dividend_yield")),
        "sector": data.get("sector"),
        "description": data.get("description"),
    }


async def get_quote(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    """
    Get real-time quotes for one or more symbols.

    Args:
        client: RobinhoodClient instance
        args: Tool arguments with 'symbols' list

    Returns:
        Dict with quotes list
    """
    symbols = [s.upper() for s in args["symbols"]]
    response = await client.get_quote(symbols)

    by_symbol = {
        quote.get("symbol"): quote for quote in response.get("results", []) if quote
    }
    quotes = []
    for symbol in symbols:
        if symbol in by_symbol:
            quotes.append(_parse_quote(by_symbol[symbol]))
        else:
            quotes.append({"symbol": symbol, "error": "Symbol not found"})

    return {"quotes": quotes}


async def get_instrument(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    """Look up an instrument by id or by symbol."""
    if args.get("instrument_id"):
        return _parse_instrument(await client.get_instrument(args["instrument_id"]))

    symbol = args.get("symbol")
    if not symbol:
        raise ValueError("Either symbol or instrument_id is required")

    response = await client.get_instrument_by_symbol(symbol)
    results = response.get("results", [])
    if not results:
        raise ValueError(f"No instrument found for {symbol.upper()}")
    return _parse_instrument(results[0])


async def get_fundamentals(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    symbol = args["symbol"].upper()
    response = await client.get_fundamentals(symbol)
    return _parse_fundamentals(symbol, response)
