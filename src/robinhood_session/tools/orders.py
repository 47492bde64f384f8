"""Order history tools for the Robinhood MCP server."""

from typing import Any

from ..client import RobinhoodClient
from .quotes import _to_float

# Schema for get_orders tool
GET_ORDERS_SCHEMA = {
    "type": "object",
    "properties": {
        "updated_at": {
            "type": "string",
            "description": "Only orders updated on or after this ISO timestamp (e.g., '2024-01-15')",
        },
        "instrument": {
            "type": "string",
            "description": "Instrument URL to filter on",
        },
        "cursor": {
            "type": "string",
            "description": "Pagination cursor from a previous call",
        },
    },
    "required": [],
}

# Schema for get_order tool
GET_ORDER_SCHEMA = {
    "type": "object",
    "properties": {
        "order_id": {
            "type": "string",
            "description": "Order id",
        }
    },
    "required": ["order_id"],
}


def _parse_order(data: dict) -> dict[str, Any]:
    """
    Parse an order from the Robinhood API response.

    Args:
        data: Raw order

    Returns:
        Parsed order dict
    """
    executions = data.get("executions") or []

    return {
        "id": data.get("id"),
        "state": data.get("state"),
        "side": data.get("side"),
        "type": data.get("type"),
        "trigger": data.get("trigger"),
        "time_in_force": data.get("time_in_force"),
        "quantity": _to_float(data.get("quantity")),
        "filled_quantity": _to_float(data.get("cumulative_quantity")),
        "price": _to_float(data.get("price")),
        "stop_price": _to_float(data.get("stop_price")),
        "average_price": _to_float(data.get("average_price")),
        "fees": _to_float(data.get("fees")),
        "instrument": data.get("instrument"),
        "reject_reason": data.get("reject_reason"),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
        "executions": len(executions),
    }


async def get_orders(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    """
    List orders, newest first as returned by the API.

    Args:
        client: RobinhoodClient instance
        args: Tool arguments (optional updated_at, instrument, cursor)

    Returns:
        Dict with orders list and the next page cursor URL
    """
    response = await client.get_orders(
        updated_at=args.get("updated_at"),
        instrument=args.get("instrument"),
        cursor=args.get("cursor"),
    )
    return {
        "orders": [_parse_order(o) for o in response.get("results", [])],
        "next": response.get("next"),
    }


async def get_order(client: RobinhoodClient, args: dict) -> dict[str, Any]:
    return _parse_order(await client.get_order(args["order_id"]))
